"""
Profile page state - the signed-in user's saved analyses
"""
from typing import List, Optional

import structlog

from api.schemas import AnalysisResult, SavedAnalysis
from client.auth_context import AuthContext
from client.orchestration import Toaster
from core.exceptions import PolicyWiseException
from services.analysis_store import AnalysisStore

logger = structlog.get_logger()


class ProfileView:
    def __init__(self, auth: AuthContext, store: AnalysisStore, toaster: Optional[Toaster] = None):
        self.auth = auth
        self.store = store
        self.toaster = toaster or Toaster()
        self.saved: List[SavedAnalysis] = []
        self.is_loading_data = False

    async def load(self) -> List[SavedAnalysis]:
        user = self.auth.require_user()
        self.is_loading_data = True
        try:
            self.saved = await self.store.list(user.uid)
        except PolicyWiseException as e:
            logger.warning("Could not fetch saved analyses", error=e.error_code)
            self.toaster.error("Could not fetch saved analyses.")
        finally:
            self.is_loading_data = False
        return self.saved

    async def save(self, analysis: AnalysisResult) -> Optional[SavedAnalysis]:
        user = self.auth.require_user()
        try:
            saved = await self.store.create(user.uid, analysis)
        except PolicyWiseException as e:
            self.toaster.error(e.message)
            return None
        self.saved.insert(0, saved)
        self.toaster.success("Analysis saved to your profile.")
        return saved

    async def delete(self, analysis_id: str) -> bool:
        """Delete permanently; the local list only changes once the store confirms."""
        user = self.auth.require_user()
        try:
            await self.store.delete(user.uid, analysis_id)
        except PolicyWiseException:
            self.toaster.error("Failed to delete analysis.")
            return False
        self.saved = [a for a in self.saved if a.id != analysis_id]
        self.toaster.success("Analysis deleted successfully")
        return True
