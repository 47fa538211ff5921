"""Script prompts per content type.

Each content type gets a role, a refinement brief, and generation settings.
Content types without an entry here (banana, user intro/outro) have no script
stage and are rejected by the script synthesizer.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from .models import ContentType

VOICE_INSTRUCTIONS = {
    "voice_1": (
        "Write with a soft, gentle tone. Use flowing language, calming imagery, and long, "
        "intentional pauses. Invite the listener to wake slowly and peacefully. Use affirming, "
        "nurturing phrases."
    ),
    "voice_2": (
        "Write with high energy and commanding authority. Use short, clipped sentences and "
        "strong verbs. Keep the pacing fast. Be confident and focused on action, without "
        "insults or profanity."
    ),
    "voice_3": (
        "Write with a steady, neutral tone. Use clear, confident phrasing with a medium "
        "cadence. Stay balanced and grounded, pausing occasionally for emphasis."
    ),
}

# Fallback when a voice has no dedicated instructions
NARRATOR_VOICE = "voice_3"


@dataclass(frozen=True)
class ContentPrompt:
    """Prompt template and generation settings for one content type."""

    role: str
    brief: str
    requirements: tuple[str, ...]
    max_tokens: int = 200
    temperature: float = 0.7


CONTENT_PROMPTS: dict[ContentType, ContentPrompt] = {
    ContentType.WAKE_UP: ContentPrompt(
        role=(
            "a motivational morning wake-up assistant. You create engaging, uplifting "
            "wake-up messages that help users start their day with energy and positivity"
        ),
        brief="Review and refine this wake-up message for {date} ({day_of_week})",
        requirements=(
            'Start with "It\'s [day of the week], [date]."',
            "Make it meditative and motivating",
            "Reference any significant holidays if provided",
            "End with a call to action to start the day",
            "Include pauses at natural break points",
        ),
        max_tokens=500,
        temperature=0.8,
    ),
    ContentType.STRETCH: ContentPrompt(
        role=(
            "a fitness and wellness expert. You create stretch and mobility content that "
            "helps users wake up their bodies safely"
        ),
        brief="Review and refine this morning stretch routine for {date}",
        requirements=(
            "Aim for one simple stretch",
            "Include breathing cues",
            "Make it accessible for morning stiffness",
            "Avoid complex movements",
        ),
        max_tokens=300,
        temperature=0.7,
    ),
    ContentType.CHALLENGE: ContentPrompt(
        role=(
            "a personal development coach. You create daily challenges that inspire "
            "growth and positive habits"
        ),
        brief="Review and refine this daily challenge for {date}",
        requirements=(
            "Create one specific, actionable challenge",
            "Include why the challenge matters",
            "Provide clear success criteria",
        ),
        max_tokens=250,
        temperature=0.8,
    ),
    ContentType.WEATHER: ContentPrompt(
        role=(
            "a weather presenter. You deliver weather information in a conversational way "
            "that helps users plan their day"
        ),
        brief="Review and refine this weather report for {date}",
        requirements=(
            "Present current conditions and forecast",
            "Include any weather alerts or warnings",
            "Make it relevant to morning planning",
        ),
        max_tokens=200,
        temperature=0.6,
    ),
    ContentType.ENCOURAGEMENT: ContentPrompt(
        role=(
            "a philosopher. You provide encouragement that helps users maintain motivation "
            "and resilience"
        ),
        brief="Review and refine this encouragement for {date}",
        requirements=(
            "Provide genuine, heartfelt encouragement",
            "Use quotes where they fit",
            "Include actionable positive thinking",
        ),
        max_tokens=200,
        temperature=0.8,
    ),
    ContentType.HEADLINES: ContentPrompt(
        role=(
            "a news podcaster. You provide a brief, balanced summary of important headlines "
            "without overwhelming the listener"
        ),
        brief="Review and refine these headlines for {date}",
        requirements=(
            "Select the 3 to 5 most important stories",
            "Provide brief, factual summaries",
            "Maintain a neutral, balanced tone",
            "Avoid sensationalism",
        ),
        max_tokens=700,
        temperature=0.5,
    ),
    ContentType.SPORTS: ContentPrompt(
        role="a sports commentator. You provide engaging sports updates and highlights",
        brief="Review and refine this sports update for {date}",
        requirements=(
            "Cover relevant games and results",
            "Include key scores",
            "Include upcoming games if relevant",
        ),
        max_tokens=200,
        temperature=0.7,
    ),
    ContentType.MARKETS: ContentPrompt(
        role=(
            "a financial markets analyst. Very matter of fact. You provide clear, "
            "accessible market updates"
        ),
        brief="Review and refine this market update for {date}",
        requirements=(
            "Summarize key market movements",
            "Include major indices performance",
            "Keep language accessible",
        ),
        max_tokens=200,
        temperature=0.6,
    ),
    ContentType.USER_REMINDERS: ContentPrompt(
        role=(
            "a helpful reminder assistant. You create gentle, supportive reminders that "
            "help users stay on track"
        ),
        brief="Review and refine these reminders for {date}",
        requirements=(
            "Present reminders in a supportive way",
            "Group related reminders",
            "Make it feel helpful, not overwhelming",
        ),
        max_tokens=250,
        temperature=0.7,
    ),
}


def prompt_for(content_type: ContentType) -> Optional[ContentPrompt]:
    return CONTENT_PROMPTS.get(content_type)


def build_system_prompt(prompt: ContentPrompt, voice: str) -> str:
    instructions = VOICE_INSTRUCTIONS.get(voice, VOICE_INSTRUCTIONS[NARRATOR_VOICE])
    return (
        f"You are {prompt.role} for the DayStart app.\n\n"
        f"Write for text-to-speech. Output only the words to be spoken.\n\n"
        f"Voice Style Instructions: {instructions}"
    )


def build_user_prompt(
    prompt: ContentPrompt,
    content: str,
    for_date: date,
    parameters: Optional[dict[str, Any]] = None,
) -> str:
    """Fill the refinement brief for one block.

    Block parameters are passed through as extra context lines.
    """
    brief = prompt.brief.format(
        date=for_date.isoformat(),
        day_of_week=for_date.strftime("%A"),
    )
    lines = [f"{brief}:", "", "ORIGINAL CONTENT:", content, ""]

    context = {k: v for k, v in (parameters or {}).items() if v is not None}
    if context:
        lines.append("Context:")
        lines.extend(f"- {key}: {value}" for key, value in sorted(context.items()))
        lines.append("")

    lines.append("Requirements:")
    lines.extend(f"- {req}" for req in prompt.requirements)
    lines.append("- Follow the voice style instructions in the system prompt")
    return "\n".join(lines)
