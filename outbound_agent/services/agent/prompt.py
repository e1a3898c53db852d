"""Prompt building for the calling agent."""
from typing import Dict, List

from outbound_agent.services.agent.constants import SUMMARY_INSTRUCTIONS
from outbound_agent.services.call_session.models import SessionConfig, Turn, TurnRole


def get_system_prompt(config: SessionConfig) -> str:
    """
    Build the instruction message that leads every completion request.

    Args:
        config: Session configuration captured at launch

    Returns:
        System prompt text
    """
    company = f" calling on behalf of {config.company}" if config.company else ""
    lines = [
        f"You are {config.agent_name}, an outbound phone agent{company}.",
    ]
    if config.persona:
        lines.append(f"Persona: {config.persona}")
    if config.customer_name:
        lines.append(f"You are speaking with {config.customer_name}.")
    lines.append(f"Objective: {config.objective}")
    if config.guardrails:
        lines.append(f"Guardrails: {config.guardrails}")
    if config.closing_strategy:
        lines.append(f"Closing strategy: {config.closing_strategy}")
    lines.append(
        "Your replies are spoken aloud on a phone call. Keep them to one or two "
        "short sentences, avoid lists and formatting, and end with a question "
        "when the conversation should continue."
    )
    return "\n".join(lines)


def build_messages(config: SessionConfig, history: List[Turn]) -> List[Dict[str, str]]:
    """Instruction message followed by the transcript in conversation order."""
    messages = [{"role": "system", "content": get_system_prompt(config)}]
    messages.extend(
        {"role": turn.role.value, "content": turn.content}
        for turn in history
        if turn.role in (TurnRole.SYSTEM, TurnRole.USER, TurnRole.ASSISTANT)
    )
    return messages


def format_transcript(history: List[Turn]) -> str:
    """Role-labelled transcript lines, system turns excluded."""
    return "\n".join(
        f"{turn.role.value.upper()}: {turn.content}"
        for turn in history
        if turn.role != TurnRole.SYSTEM
    )


def build_summary_messages(history: List[Turn]) -> List[Dict[str, str]]:
    """Messages asking the model for a summary and next steps."""
    return [
        {"role": "system", "content": SUMMARY_INSTRUCTIONS},
        {"role": "user", "content": format_transcript(history)},
    ]
