"""
Diff Store - Proposed changes held per stream until applied or discarded
"""

from __future__ import annotations

import logging

from errors import NotFoundError
from models.diff import DiffOutcome, DiffProposal, DiffStatus
from services.patch_applier import apply_patch

logger = logging.getLogger(__name__)


class DiffStore:
    """Ordered mapping of proposed diffs, keyed by id

    Owned by a single stream. Ids that have ever been proposed are
    remembered so the stream can reject reuse even after an apply/discard.
    """

    def __init__(self):
        self._proposed: dict[str, DiffProposal] = {}
        self._seen: set[str] = set()

    def __contains__(self, diff_id: str) -> bool:
        return diff_id in self._proposed

    def __len__(self) -> int:
        return len(self._proposed)

    def has_seen(self, diff_id: str) -> bool:
        return diff_id in self._seen

    def add(self, proposal: DiffProposal):
        self._seen.add(proposal.id)
        self._proposed[proposal.id] = proposal

    def ids(self) -> list[str]:
        return list(self._proposed)

    def proposals(self) -> list[DiffProposal]:
        return list(self._proposed.values())

    def get(self, diff_id: str) -> DiffProposal:
        try:
            return self._proposed[diff_id]
        except KeyError:
            raise NotFoundError(f"Diff not found: {diff_id}") from None

    def apply(self, diff_id: str, current_content: str) -> DiffOutcome:
        """Apply a held proposal to the editor's current file content

        On PatchConflictError the proposal stays held and nothing changes.
        """
        proposal = self.get(diff_id)
        new_content = apply_patch(current_content, proposal.patch, proposal.file_path)
        del self._proposed[diff_id]
        logger.info("Applied diff %s to %s", diff_id, proposal.file_path)
        return DiffOutcome(
            id=diff_id,
            file_path=proposal.file_path,
            status=DiffStatus.APPLIED,
            content=new_content,
        )

    def discard(self, diff_id: str) -> DiffOutcome:
        proposal = self.get(diff_id)
        del self._proposed[diff_id]
        logger.info("Discarded diff %s for %s", diff_id, proposal.file_path)
        return DiffOutcome(id=diff_id, file_path=proposal.file_path, status=DiffStatus.DISCARDED)

    def clear(self):
        self._proposed.clear()
