from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import List, Literal, Mapping, Optional, Sequence, Tuple

from .models import ConsentLevel, FeedbackEntry, UserProfile
from .privacy import gate_profile

Framing = Literal["array", "object", "object_with_sources"]

LANGUAGE_NAMES = {
    "en": "English",
    "es": "Spanish",
    "pt": "Portuguese",
    "fr": "French",
    "de": "German",
}


@dataclass(frozen=True)
class Prompt:
    system: str
    user: str


class InstructionBuilder:
    """Accumulates directives; each optional line is guarded by its own condition."""

    def __init__(self, opening: str) -> None:
        self._blocks: List[List[str]] = [[opening.strip()]]

    def add(self, text: str) -> "InstructionBuilder":
        self._blocks[-1].append(text)
        return self

    def add_if(self, condition: object, text: str) -> "InstructionBuilder":
        if condition:
            self.add(text)
        return self

    def section(self, title: Optional[str] = None, intro: Optional[str] = None) -> "InstructionBuilder":
        block = [f"--- {title} ---"] if title else []
        if intro:
            block.append(intro)
        self._blocks.append(block)
        return self

    def build(self) -> str:
        return "\n\n".join("\n".join(b) for b in self._blocks if b)


def language_name(code: str) -> str:
    key = (code or "").strip().lower()
    if key in LANGUAGE_NAMES:
        return LANGUAGE_NAMES[key]
    primary = key.replace("_", "-").split("-")[0]
    return LANGUAGE_NAMES.get(primary, code.strip() or "English")


def language_directive(code: str) -> str:
    return f"Your response MUST be in the following language: {language_name(code)}."


def time_of_day(now: datetime) -> str:
    if now.hour < 12:
        return "morning"
    if now.hour < 17:
        return "afternoon"
    return "evening"


def _fmt(value: object) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


# --- exercises -------------------------------------------------------------

EXERCISE_OPENING = (
    "You are an empathetic and supportive AI assistant specializing in anxiety relief. "
    "Your goal is to provide users with safe, effective, and personalized coping exercises."
)

RETRIEVAL_INTRO = (
    "You MUST prioritize the information from the following retrieved documents as your primary "
    "source of truth. Synthesize your response based on these documents."
)

EXERCISE_FIELDS = """{{
      "title": "string",
      "description": "string (A brief, encouraging explanation of the exercise and its benefits.)",
      "category": "string (Enum: 'Mindfulness', 'Cognitive', 'Somatic', 'Behavioral', 'Grounding')",
      "steps": ["string", "string", ...],
      "duration_minutes": "number (Estimated time to complete the exercise)"
    }}"""

FRAMING_TEMPLATES = {
    "array": (
        "After consulting the retrieved documents, you may use Google Search to supplement the information "
        "if necessary, especially for finding details not covered in the provided texts.\n\n"
        "Your FINAL and ONLY output must be a single, valid JSON array of exercise objects. Do not include any "
        "introductory text, closing remarks, markdown formatting, or any content outside of the JSON array.\n\n"
        "The JSON schema for each exercise object is:\n" + EXERCISE_FIELDS
    ),
    "object": (
        "Your FINAL and ONLY output must be a single, valid JSON object. Do not include any introductory text, "
        "closing remarks, markdown formatting, or any content outside of the JSON object.\n\n"
        "The JSON schema is:\n{{\n  \"exercises\": [\n    " + EXERCISE_FIELDS + "\n  ]\n}}"
    ),
    "object_with_sources": (
        "Your FINAL and ONLY output must be a single, valid JSON object. Do not include any introductory text, "
        "closing remarks, markdown formatting, or any content outside of the JSON object.\n\n"
        "The JSON schema is:\n{{\n  \"exercises\": [\n    " + EXERCISE_FIELDS + "\n  ],\n"
        "  \"sources\": [\n    {{\"url\": \"string\", \"title\": \"string\"}}\n  ]\n}}\n\n"
        "If you rely on specific web pages, list their URLs and titles in 'sources'. "
        "Otherwise return an empty 'sources' array."
    ),
}

EXERCISE_CLOSING = (
    "Provide 2-4 diverse exercises. Prioritize simple, actionable techniques that can be performed immediately. "
    "Ensure the exercises are appropriate for a general audience and do not constitute medical advice."
)

PERSONALIZATION_INTRO = (
    "Use the following user profile data to deeply personalize the recommendations. Tailor the type of "
    "exercise, its framing, and its complexity based on this context. Do not mention the profile data in "
    "your response."
)

ACTIVITY_DETAILED = (
    "- Activity Level: {value}. This is crucial.\n"
    "  - If 'sedentary', prioritize extremely low-effort exercises that can be done while sitting or lying "
    "down (e.g., sensory grounding, simple breathing, cognitive reframing). Avoid suggesting significant "
    "physical movement.\n"
    "  - If 'lightly_active', you can introduce gentle movements like stretching or slow walking.\n"
    "  - If 'moderately_active' or 'very_active', the user is receptive to physical activity. Suggest more "
    "dynamic, movement-based coping strategies (e.g., a brisk walk, yoga, shaking out limbs) to help release "
    "physical tension."
)

# (field, detailed line, compact line)
PROFILE_DIRECTIVES: Sequence[Tuple[str, str, str]] = (
    ("age",
     "- Age: {value}. Adjust language and examples to be age-appropriate.",
     "- Age: {value}. Keep examples age-appropriate."),
    ("location",
     "- Location/Time Zone: {value}. Consider the likely time of day for the user when suggesting activities.",
     "- Location/Time Zone: {value}. Consider the user's likely time of day."),
    ("sleep_hours",
     "- Average Sleep: {value} hours/night. If sleep is low, prioritize relaxing or pre-sleep exercises and "
     "avoid overly stimulating ones.",
     "- Average Sleep: {value} hours/night. If low, prefer relaxing exercises."),
    ("caffeine_intake",
     "- Caffeine Intake: {value}. If high, you can suggest exercises to manage jitteriness or an energy crash.",
     "- Caffeine Intake: {value}. If high, address jitteriness."),
    ("work_environment",
     "- Work/School Environment: {value}. Suggest exercises that are practical for this setting (e.g., discreet "
     "exercises for an 'office', focus techniques for a 'student', physical relaxation for 'outdoors_manual').",
     "- Work/School Environment: {value}. Keep exercises practical for this setting."),
    ("access_to_nature",
     "- Access to Nature: {value}. If 'yes', you can suggest outdoor activities like mindful walking. If 'no' or "
     "'limited', focus on indoor exercises.",
     "- Access to Nature: {value}. Only suggest outdoor activities if 'yes'."),
    ("activity_level",
     ACTIVITY_DETAILED,
     "- Activity Level: {value}. This is crucial. If 'sedentary', prioritize low-effort exercises and avoid "
     "significant physical movement. If active, suggest more dynamic strategies."),
    ("coping_styles",
     "- Previously helpful coping styles: \"{value}\". Lean into these styles and techniques.",
     "- Previously helpful coping styles: \"{value}\". Lean into these styles."),
    ("learning_modality",
     "- Preferred Learning Style: {value}. Frame exercise steps accordingly. For 'visual', use descriptive "
     "imagery. For 'kinesthetic', focus on bodily sensations. For 'auditory', emphasize sounds.",
     "- Preferred Learning Style: {value}. Frame steps accordingly (visual, kinesthetic, auditory)."),
    ("diagnosed_disorders",
     "- Diagnosed Conditions: \"{value}\". Be extra sensitive and ensure suggestions are safe and appropriate "
     "for this context.",
     "- Diagnosed Conditions: \"{value}\". Be extra sensitive and ensure suggestions are safe."),
)

HELPFUL_LINE = (
    "- The user found these exercises helpful (rated 4-5 stars): {titles}. Prioritize similar styles and topics."
)
UNHELPFUL_LINE = (
    "- The user found these exercises NOT helpful (rated 1-2 stars): {titles}. Avoid suggesting exercises with "
    "similar styles or topics."
)

EXERCISE_USER_PROMPT = 'Generate coping exercises for the following symptoms: "{symptoms}"'


def split_feedback(feedback: Optional[Mapping[str, FeedbackEntry]]) -> Tuple[List[str], List[str]]:
    entries = list((feedback or {}).values())
    helpful = [f.title for f in entries if f.rating >= 4]
    unhelpful = [f.title for f in entries if f.rating <= 2]
    return helpful, unhelpful


def _quoted(titles: Sequence[str]) -> str:
    return ", ".join(f'"{t}"' for t in titles)


def build_exercise_prompt(
    symptoms: str,
    profile: UserProfile,
    consent: ConsentLevel,
    feedback: Optional[Mapping[str, FeedbackEntry]],
    language: str,
    documents: Sequence[str],
    framing: Framing = "array",
    detailed: bool = True,
) -> Prompt:
    b = InstructionBuilder(EXERCISE_OPENING)
    b.section("RETRIEVED KNOWLEDGE BASE DOCUMENTS", RETRIEVAL_INTRO)
    for i, doc in enumerate(documents, start=1):
        b.section(intro=f"Document {i}:\n{doc}")
    b.section("END OF RETRIEVED DOCUMENTS")
    b.section(intro=language_directive(language))
    b.section(intro=FRAMING_TEMPLATES[framing].format())
    b.section(intro=EXERCISE_CLOSING)

    visible = gate_profile(profile, consent).model_dump()
    lines = []
    for field, long_form, short_form in PROFILE_DIRECTIVES:
        value = visible.get(field)
        if value is not None and value != "":
            lines.append((long_form if detailed else short_form).format(value=_fmt(value)))
    if lines:
        b.section("PERSONALIZATION CONTEXT", PERSONALIZATION_INTRO)
        for line in lines:
            b.add(line)

    helpful, unhelpful = split_feedback(feedback)
    if helpful or unhelpful:
        b.section("EXERCISE FEEDBACK")
        b.add_if(helpful, HELPFUL_LINE.format(titles=_quoted(helpful)))
        b.add_if(unhelpful, UNHELPFUL_LINE.format(titles=_quoted(unhelpful)))
    b.add("--- END OF CONTEXT ---")
    return Prompt(system=b.build(), user=EXERCISE_USER_PROMPT.format(symptoms=symptoms))


# --- journal ---------------------------------------------------------------

JOURNAL_OPENING = (
    "You are a compassionate, AI-powered journaling assistant. Your role is to provide gentle, supportive, and "
    "insightful reflections on a user's journal entry. You are not a therapist and you must not provide medical "
    "advice, diagnoses, or treatment plans."
)

JOURNAL_STEPS = """Your analysis should:
1. Start with a sentence of validation and empathy.
2. Gently identify potential cognitive patterns (e.g., all-or-nothing thinking, catastrophizing), recurring themes, or emotional undercurrents in the text. Use bullet points for clarity.
3. Offer one or two open-ended, reflective questions to encourage deeper self-exploration.
4. Conclude with a supportive and encouraging statement.
Keep the entire response concise, under 150 words. Do not wrap your response in markdown code fences."""


def build_journal_prompt(entry_text: str, language: str) -> Prompt:
    b = InstructionBuilder(JOURNAL_OPENING)
    b.section(intro=language_directive(language))
    b.section(intro=JOURNAL_STEPS)
    return Prompt(system=b.build(), user=f'Please analyze the following journal entry: "{entry_text}"')


# --- for you ---------------------------------------------------------------

FOR_YOU_OPENING = (
    "You are a compassionate AI assistant. Your goal is to provide a single, concise, and personalized piece of "
    "content for a \"For You\" dashboard card."
)

FOR_YOU_CHOICES = """Based on the user's profile and the current time of day, generate ONE of the following:
1. A short, encouraging quote that feels personal and relevant.
2. A simple, 1-minute mindfulness prompt that can be done right now.
3. A gentle, open-ended question for reflection.

Your response must be short (1-3 sentences) and directly usable as text on a card. Do not include any extra conversational text, titles (like "Quote:"), or markdown formatting. Be creative and empathetic."""

TIME_OF_DAY_LINE = (
    "- Current time of day: {tod}. For morning, be uplifting. For afternoon, suggest a reset. "
    "For evening, encourage winding down."
)

FOR_YOU_USER_PROMPT = "Generate a personalized suggestion for the user based on my system instruction."


def build_for_you_prompt(profile: UserProfile, language: str, now: datetime, detailed: bool = True) -> Prompt:
    b = InstructionBuilder(FOR_YOU_OPENING)
    b.section(intro=language_directive(language))
    b.section(intro=FOR_YOU_CHOICES)
    b.section("PERSONALIZATION CONTEXT", TIME_OF_DAY_LINE.format(tod=time_of_day(now)))
    if detailed:
        b.add_if(profile.work_environment,
                 f"- Work/School Environment: {profile.work_environment}. A 'student' might need focus, "
                 "someone 'remote' might need a break from their screen.")
        b.add_if(profile.activity_level,
                 f"- Activity Level: {profile.activity_level}. An 'active' person might appreciate a prompt about "
                 "their body, while a 'sedentary' person needs something achievable from a chair.")
    else:
        b.add_if(profile.work_environment, f"- Work/School Environment: {profile.work_environment}.")
        b.add_if(profile.activity_level,
                 f"- Activity Level: {profile.activity_level}. Keep it achievable from a chair if 'sedentary'.")
    b.add_if(profile.access_to_nature == "yes",
             "- The user has access to nature, you can incorporate that into your suggestions.")
    b.add_if(profile.coping_styles,
             f"- Previously helpful coping styles: \"{profile.coping_styles}\". Your suggestion can align with these themes.")
    b.add("--- END OF CONTEXT ---")
    return Prompt(system=b.build(), user=FOR_YOU_USER_PROMPT)


# --- thought challenge -----------------------------------------------------

THOUGHT_OPENING = (
    "You are a helpful CBT assistant. Your role is to help a user challenge their automatic negative thought "
    "by asking gentle, Socratic questions."
)

THOUGHT_FORMAT = """Based on the user's situation and thought, provide 2-3 open-ended questions that encourage them to look for evidence, consider alternative perspectives, and examine the consequences of their thinking.
Do not give advice. Frame your response as a bulleted list of questions. Do not include any conversational text before or after the list.
Example format:
- What is another way to look at this situation?
- If a friend were in this situation, what would you tell them?"""

THOUGHT_USER_PROMPT = """Situation: "{situation}"
Negative Thought: "{thought}"

Generate challenging questions based on the above."""


def build_thought_challenge_prompt(situation: str, negative_thought: str, language: str) -> Prompt:
    b = InstructionBuilder(THOUGHT_OPENING)
    b.section(intro=language_directive(language))
    b.section(intro=THOUGHT_FORMAT)
    return Prompt(system=b.build(), user=THOUGHT_USER_PROMPT.format(situation=situation, thought=negative_thought))


# --- quotes ----------------------------------------------------------------

QUOTES_OPENING = (
    "You are a compassionate AI assistant. Your goal is to provide a few short, uplifting, and encouraging "
    "motivational quotes related to mental well-being, anxiety, and finding calm."
)

QUOTES_FORMAT = (
    "Your response must be a valid JSON array of 3-5 unique strings. Each string should be a concise quote. "
    "Do not add any extra formatting or commentary."
)


def build_quotes_prompt(language: str) -> Prompt:
    b = InstructionBuilder(QUOTES_OPENING)
    b.add(language_directive(language))
    b.add(QUOTES_FORMAT)
    return Prompt(system=b.build(), user="Generate 3-5 motivational quotes.")
