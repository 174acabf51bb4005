"""
Canonical scripted lines for the interview.

The state machine advances only when the assistant says these lines verbatim,
so every caller must render them through this module.
"""
from ..config import CLOSING_NAME_FALLBACK, CLOSING_TEMPLATE, GREETING_TEMPLATE, INTERVIEWER_NAME


class InterviewPrompts:
    """Collection of scripted interviewer lines."""

    @staticmethod
    def greeting(candidate_name: str, interviewer_name: str = INTERVIEWER_NAME) -> str:
        """Opening line the assistant must say to leave `idle`."""
        return GREETING_TEMPLATE.format(name=candidate_name.strip(), interviewer=interviewer_name)

    @staticmethod
    def closing_line(candidate_name: str) -> str:
        """Line said when the background phase ends, addressed by first name."""
        parts = (candidate_name or "").split()
        first_name = parts[0] if parts else CLOSING_NAME_FALLBACK
        return CLOSING_TEMPLATE.format(name=first_name)

    @staticmethod
    def closing_instruction(candidate_name: str) -> str:
        """Instruction handed to the assistant so it says the closing line exactly."""
        return f'Say exactly: "{InterviewPrompts.closing_line(candidate_name)}"'
