import json

from config import get_settings
from services.model_client import parse_structured


POLICY_PAYLOAD = {
    "isPolicy": True,
    "policyName": "SecureLife Term Plan",
    "policyNumber": "SL-2024-0042",
    "overview": "A 20-year term life policy paying a lump sum to your family if you die during the term.",
    "benefits": ["Death benefit of $500,000", "Premium waiver on critical illness"],
    "risks": ["Suicide exclusion in the first 12 months (Section 7.2)", "No payout after term ends"],
    "future_problems": ["Premiums rise sharply on renewal after age 60"],
    "pros_cons": {
        "pros": ["Low premium for the cover amount"],
        "cons": ["No maturity benefit"],
    },
    "final_verdict": "Neutral Policy: Solid protection at a fair price, but offers no savings component.",
}

NOT_POLICY_PAYLOAD = {
    "isPolicy": False,
    "overview": "This document is not an insurance policy; it appears to be a lease agreement.",
    "benefits": ["Not applicable: the document is not a policy."],
    "risks": ["Not applicable: the document is not a policy."],
    "future_problems": [],
    "pros_cons": {"pros": [], "cons": []},
    "final_verdict": "Not applicable: the document is a lease agreement.",
}

PDF_BYTES = b"%PDF-1.4\n1 0 obj<<>>endobj\ntrailer<<>>\n%%EOF"


class FakeModelClient:
    """Stands in for GeminiModelClient; validates canned payloads like the real one."""

    def __init__(self, responses=None, text_responses=None, error=None, settings=None):
        self.settings = settings or get_settings()
        self.responses = list(responses or [])
        self.text_responses = list(text_responses or [])
        self.error = error
        self.calls = []

    async def generate_json(self, parts, schema, *, operation, model=None, system_instruction=None):
        self.calls.append(
            {
                "kind": "json",
                "parts": list(parts),
                "schema": schema,
                "operation": operation,
                "model": model,
                "system_instruction": system_instruction,
            }
        )
        if self.error is not None:
            raise self.error
        return parse_structured(json.dumps(self.responses.pop(0)), schema, operation)

    async def generate_text(self, parts, *, operation, model=None, use_url_context=False, system_instruction=None):
        self.calls.append(
            {
                "kind": "text",
                "parts": list(parts),
                "operation": operation,
                "model": model,
                "use_url_context": use_url_context,
            }
        )
        if self.error is not None:
            raise self.error
        return self.text_responses.pop(0)
