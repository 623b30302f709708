"""Build the model-facing conversation for a chat request"""

from __future__ import annotations

from models.chat import ChatContext, ChatRequest, LLMMessage

BASE_SYSTEM_PROMPT = """You are an AI code assistant integrated with the user's editor. You help developers write, understand, and improve code.

When suggesting code changes:
1. Explain the change briefly before showing code
2. Use proper code formatting with language tags
3. For file modifications, reply with the COMPLETE new file content in a fenced block whose info string names the file, e.g. ```python file="src/app.py"
4. Be concise but thorough
"""


def build_system_prompt(context: ChatContext) -> str:
    """Render the editor context snapshot into the system prompt"""
    parts = [BASE_SYSTEM_PROMPT]

    active_file = context.active_file
    if active_file is not None:
        parts.append(f"\nCurrent file: {active_file.path} ({active_file.language})\n")
        if active_file.selection is not None:
            parts.append(
                f"\nSelected code:\n```{active_file.language}\n{active_file.selection.text}\n```\n"
            )
        parts.append(f"\nFile content:\n```{active_file.language}\n{active_file.content}\n```\n")

    if context.workspace_root:
        parts.append(f"\nWorkspace: {context.workspace_root}\n")

    if context.open_files:
        parts.append("\nOpen files:\n")
        for open_file in context.open_files:
            parts.append(f"- {open_file.path} ({open_file.language})\n")

    if context.diagnostics:
        parts.append("\nCurrent issues:\n")
        for diagnostic in context.diagnostics:
            parts.append(
                f"- {diagnostic.file}:{diagnostic.line} "
                f"[{diagnostic.severity.value}] {diagnostic.message}\n"
            )

    return "".join(parts)


def build_messages(request: ChatRequest) -> list[LLMMessage]:
    """One leading system message followed by the user prompt"""
    return [
        LLMMessage(role="system", content=build_system_prompt(request.context)),
        LLMMessage(role="user", content=request.prompt),
    ]
