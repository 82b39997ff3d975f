"""Prompt assembly helpers used by the LLM-backed collaborators.

This module only builds prompt strings. Route parsing, JSON extraction and model
invocation happen in `carevoice.nlp.assistant_query`,
`carevoice.nlp.reminder_parser` and `carevoice.llm`.

Design constraints:
    - Deterministic construction for identical inputs.
    - Fixed ordering of prompt components.
    - No hidden side effects (no I/O, no global state mutation).

Prompt safety model:
    - Safety is instruction-led, not parser-enforced.
    - User text is interpolated as a quoted raw string.
"""


# =========================================================
# APP IDENTITY (GLOBAL)
# =========================================================
# Shared prefix prepended to the assistant prompt.

APP_IDENTITY = (
    "You are a warm, concise AI assistant inside a community resource app "
    "for senior citizens.\n\n"
    "The app provides ONLY:\n"
    "- Events & Activities (walking groups, lunches, workshops, clubs)\n"
    "- Volunteer Support & Matching (finding volunteers from NGOs or students for help)\n"
    "- Health Services (hospitals, clinics, urgent care)\n\n"
)


# =========================================================
# ASSISTANT PROMPT
# =========================================================
# Prompt component order:
#   1) `APP_IDENTITY`
#   2) Quoted user utterance
#   3) Behaviour rules
#   4) Routing indicator contract (`[ROUTE:x]`)

ASSISTANT_RULES = (
    "Your goals:\n"
    "1. Acknowledge the message naturally.\n"
    "2. Route the user to the correct section (Events, Volunteers, Health Services, or General Info).\n"
    "3. Give clear, simple, concise guidance that sounds natural when spoken aloud.\n\n"
    "Rules:\n"
    "- Users are never volunteers. They can FIND a volunteer, never become one.\n"
    "- For loneliness or social connection, suggest Events, not volunteers.\n"
    "- Only suggest places inside the app. Never recommend external locations.\n"
    "- For an emergency (chest pain, can't breathe, fainted, fire) tell them to call 911 "
    "immediately and do not direct them to app sections.\n"
    "- Avoid politics, medical diagnoses, financial or legal advice.\n"
    "- 1-3 short sentences, ending with a helpful suggestion or question.\n\n"
)

ROUTE_INSTRUCTIONS = (
    "After your response text, if you suggest a section, add routing indicators:\n"
    "[ROUTE:events] for Events & Activities\n"
    "[ROUTE:volunteers] for Volunteer Support & Matching\n"
    "[ROUTE:health] for Health Services\n"
    "Multiple indicators are allowed. Omit them when no section fits.\n\n"
    "Example:\n"
    "\"I can help you find a volunteer who can assist you. "
    "Check out Volunteer Matching. [ROUTE:volunteers]\"\n"
)


def build_assistant_prompt(text: str) -> str:
    """Build the general assistant prompt for one utterance."""
    return (
        APP_IDENTITY
        + f"The user said: \"{(text or '').strip()}\"\n\n"
        + ASSISTANT_RULES
        + ROUTE_INSTRUCTIONS
    )


# =========================================================
# REMINDER EXTRACTION PROMPT
# =========================================================
# Extraction is JSON-only. The parser tolerates fenced output but nothing else.

REMINDER_EXTRACTION_RULES = (
    "Default to success = true. Only set success to false if the input is clearly "
    "not about medications (e.g. \"what's the weather\", \"find events\").\n\n"
    "Extract:\n"
    "1. name: medication name, properly capitalized (\"vitamin d\" -> \"Vitamin D\"). "
    "Use \"Medication\" when unclear. Never null.\n"
    "2. dosage: e.g. \"100mg\", \"1 tablet\". Default \"As prescribed\".\n"
    "3. frequency: \"Daily\" | \"Twice daily\" | \"Three times daily\" | "
    "\"Four times daily\" | \"As needed\". Default \"Daily\".\n"
    "4. reminderTimes: 24-hour \"HH:MM\" strings, at least one, at most 3.\n"
    "   \"8am\" -> \"08:00\", \"9:30 PM\" -> \"21:30\".\n"
    "   morning=08:00, afternoon=14:00, evening=18:00, night/bedtime=20:00.\n"
    "   Twice daily = [\"08:00\", \"20:00\"]; three times = [\"08:00\", \"14:00\", \"20:00\"].\n"
    "   No time information: [\"08:00\"].\n\n"
)

REMINDER_OUTPUT_FORMAT = (
    "Respond ONLY with valid JSON of this exact structure:\n"
    "{\n"
    "  \"name\": \"...\",\n"
    "  \"dosage\": \"...\",\n"
    "  \"frequency\": \"...\",\n"
    "  \"reminderTimes\": [\"HH:MM\"],\n"
    "  \"success\": true,\n"
    "  \"message\": \"Brief description of what was extracted\"\n"
    "}\n"
)


def build_reminder_prompt(text: str) -> str:
    """Build the medication-reminder extraction prompt."""
    return (
        "You extract medication reminder information from natural language voice input.\n\n"
        + f"The user said: \"{(text or '').strip()}\"\n\n"
        + REMINDER_EXTRACTION_RULES
        + REMINDER_OUTPUT_FORMAT
    )
