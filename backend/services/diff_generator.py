"""
Diff Generator Service - Turn model answers into unified diff proposals
"""

from __future__ import annotations

import logging
import re
import uuid
from difflib import unified_diff

from models.chat import ChatContext
from models.diff import DiffProposal
from services.patch_applier import split_lines

logger = logging.getLogger(__name__)

# ```python file="src/app.py"
CODE_BLOCK_PATTERN = re.compile(r'```(\w+)?[ \t]+file="([^"]+)"[ \t]*\n(.*?)```', re.DOTALL)
NO_NEWLINE = "\\ No newline at end of file\n"


class DiffGenerator:
    """Generate unified diffs for code modifications"""

    def generate_patch(self, original_content: str, new_content: str, file_path: str) -> str:
        """Unified diff that reproduces new_content exactly when applied"""
        patch_lines = []
        for line in unified_diff(
            split_lines(original_content),
            split_lines(new_content),
            fromfile=f"a/{file_path}",
            tofile=f"b/{file_path}",
        ):
            if line.endswith("\n"):
                patch_lines.append(line)
            else:
                # Last line of a file without a trailing newline
                patch_lines.append(line + "\n")
                patch_lines.append(NO_NEWLINE)
        return "".join(patch_lines)

    def extract_diffs(self, response: str, context: ChatContext) -> list[DiffProposal]:
        """Build one proposal per fenced code block annotated with a file path"""
        diffs = []
        active_file = context.active_file

        for match in CODE_BLOCK_PATTERN.finditer(response):
            _language, file_path, new_content = match.groups()

            original_content = ""
            if active_file is not None and active_file.path == file_path:
                original_content = active_file.content

            if not new_content.endswith("\n"):
                new_content += "\n"
            if original_content and not original_content.endswith("\n"):
                new_content = new_content[:-1]

            patch = self.generate_patch(original_content, new_content, file_path)
            if not patch:
                logger.debug("Code block for %s matches current content, skipping", file_path)
                continue

            diff = DiffProposal(
                id=str(uuid.uuid4()),
                file_path=file_path,
                patch=patch,
                description=f"Update {file_path}",
            )
            diffs.append(diff)
            logger.info("Extracted diff %s for %s", diff.id, file_path)

        return diffs
