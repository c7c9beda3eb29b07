"""Translate technical errors to user-friendly messages."""

import re
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class UserFriendlyError:
    """User-friendly error representation."""
    original_error: Exception
    title: str
    explanation: str
    actions: List[str]
    documentation: Optional[str] = None
    show_technical: bool = False


class ErrorTranslator:
    """Translate technical errors to user-friendly messages."""

    ERROR_PATTERNS = {
        # Server not running / wrong port
        r"connect(ion)? ?(error|refused)|all connection attempts failed|name or service not known": {
            "title": "Task server not reachable",
            "explanation": "Could not open a connection to the task server. It may not be running, or the configured address is wrong.",
            "actions": [
                "Start the task server and retry",
                "Check server.base_url in config/attempt-sync.yaml",
                "Override with ATTEMPT_SYNC_SERVER__BASE_URL for a one-off run",
            ],
            "documentation": "README.md#configuration",
        },

        r"timed? ?out|ReadTimeout|ConnectTimeout": {
            "title": "Task server timed out",
            "explanation": "The task server accepted the connection but did not answer in time.",
            "actions": [
                "Retry the command",
                "Raise server.timeout_seconds if the server is under heavy load",
            ],
        },

        r"config.*not.*found|no such file.*(config|profiles)": {
            "title": "Configuration missing",
            "explanation": "A configuration file referenced on the command line was not found.",
            "actions": [
                "Check the --config path",
                "Run without --config to use built-in defaults",
            ],
            "documentation": "README.md#configuration",
        },

        r"\b404\b|not found": {
            "title": "Attempt or process not found",
            "explanation": "The task server does not know the requested attempt or execution process.",
            "actions": [
                "Double-check the attempt id",
                "List the task's attempts in the task server UI",
            ],
        },

        r"\b401\b|\b403\b|unauthori[sz]ed|forbidden": {
            "title": "Task server rejected the credentials",
            "explanation": "The request was refused by the task server's authentication layer.",
            "actions": [
                "Set server.auth_token in config/attempt-sync.yaml",
                "Or export ATTEMPT_SYNC_SERVER__AUTH_TOKEN",
            ],
        },

        r"FollowUpValidationError|message is empty|no profile": {
            "title": "Follow-up not sent",
            "explanation": "The follow-up message was empty or no agent profile could be resolved for it.",
            "actions": [
                "Provide a non-empty message",
                "Pass --profile, or set follow_up.default_profile in config",
            ],
        },
    }

    def translate(self, error: Exception) -> UserFriendlyError:
        """Convert exception to user-friendly format."""
        error_str = str(error)
        error_type = type(error).__name__
        full_error = f"{error_type}: {error_str}"

        for pattern, translation in self.ERROR_PATTERNS.items():
            if re.search(pattern, full_error, re.IGNORECASE):
                return UserFriendlyError(
                    original_error=error,
                    title=translation["title"],
                    explanation=translation["explanation"],
                    actions=translation["actions"],
                    documentation=translation.get("documentation"),
                    show_technical=False
                )

        # Fallback for unknown errors
        return UserFriendlyError(
            original_error=error,
            title="Unexpected error",
            explanation=str(error),
            actions=[
                "Re-run with --log-level DEBUG",
                "Check logs for details",
            ],
            show_technical=True
        )

    def format_for_cli(self, friendly_error: UserFriendlyError) -> str:
        """Format error for CLI display."""
        output = f"[bold red]{friendly_error.title}[/]\n\n"
        output += f"{friendly_error.explanation}\n\n"

        output += "[bold]How to fix:[/]\n"
        for i, action in enumerate(friendly_error.actions, 1):
            output += f"  {i}. {action}\n"

        if friendly_error.documentation:
            output += f"\n[dim]Learn more: {friendly_error.documentation}[/]"

        if friendly_error.show_technical:
            output += f"\n\n[dim]Technical details:[/]\n[dim]{friendly_error.original_error}[/]"

        return output
