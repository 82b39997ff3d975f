"""
Interactive CLI adapter for CareVoice.

Architectural role:
- Provides a terminal stand-in for the voice front end: each line typed is
  treated as one transcribed utterance.
- Delegates all routing to `carevoice.core.engine.CareSession`.

Request lifecycle (per line):
1. Read stdin.
2. Handle local control commands:
   - `exit` / `quit`: leave the loop.
   - `home`: return to the home screen (clears conversation memory).
   - `/screen <name>`: navigate explicitly, like pressing a button.
   - `/meds`: list stored medications and their reminder times.
3. Send everything else to `CareSession.handle_utterance`.
4. Print the resulting screen, message and volunteer matches.

Error handling strategy:
- EOF and keyboard interrupts terminate the loop without traceback output.
- Unknown screen names print a usage hint.
"""

from dotenv import load_dotenv

load_dotenv()

import sys
import asyncio
import logging
import os

from carevoice.core.engine import CareSession, SCREEN_TITLES
from carevoice.core.routing_types import Screen
from carevoice.nlp.time_format import format_time_12h


# =========================================================
# UTF-8 SAFE STDOUT
# =========================================================

if hasattr(sys.stdout, "reconfigure"):
    try:
        sys.stdout.reconfigure(encoding="utf-8", errors="ignore")
    except (AttributeError, ValueError, OSError):
        pass


# =========================================================
# RENDERING
# =========================================================

def render_result(result) -> None:
    print(f"[{SCREEN_TITLES[result.screen]}]")

    if result.message:
        print(result.message)

    if result.reply and result.reply.emergency_number:
        print(f"(Call {result.reply.emergency_number})")

    if result.reply and result.reply.options:
        names = ", ".join(SCREEN_TITLES[s] for s in result.reply.options)
        print(f"Options: {names}")

    if result.suggested_routes:
        names = ", ".join(SCREEN_TITLES[s] for s in result.suggested_routes)
        print(f"Suggested: {names} (say 'yes' to open the first)")

    for volunteer in result.volunteer_matches:
        print(
            f" - {volunteer.name}: {volunteer.skill_type}, "
            f"{volunteer.distance_miles:g} mi, {volunteer.availability}"
        )


def render_medications(session: CareSession) -> None:
    medications = session.store.list()
    if not medications:
        print("No medications saved.")
        return

    for medication in medications:
        times = ", ".join(format_time_12h(t) for t in medication.reminder_times) or "no reminders"
        print(f" - {medication.name} ({medication.dosage}, {medication.frequency}): {times}")


# =========================================================
# MAIN APPLICATION LOOP
# =========================================================

def main():
    """Run the interactive terminal session."""
    if os.getenv("DEBUG") == "true":
        logging.basicConfig(level=logging.DEBUG)

    session = CareSession()

    print("CareVoice started. (Type 'exit' to quit)\n")
    print("Commands: home, /screen <name>, /meds")
    print("-" * 60)

    while True:

        try:
            text = input("You: ").strip()

        except EOFError:
            print("\nGoodbye.")
            break

        except KeyboardInterrupt:
            print("\nInterrupted.")
            break

        if not text:
            continue

        command = text.lower()

        if command in ("exit", "quit"):
            print("Shutting down.")
            break

        if command == "home":
            asyncio.run(session.go_home())
            print("[Home]")
            continue

        if command == "/meds":
            render_medications(session)
            continue

        if command.startswith("/screen"):
            parts = text.split()
            if len(parts) != 2 or Screen.parse(parts[1]) is None:
                options = ", ".join(s.value for s in Screen)
                print(f"Usage: /screen <{options}>")
                continue

            state = asyncio.run(session.navigate_to(parts[1]))
            print(f"[{SCREEN_TITLES[Screen(state['screen'])]}]")
            for volunteer in session.volunteer_matches:
                print(f" - {volunteer.name}: {volunteer.skill_type}, {volunteer.availability}")
            continue

        result = asyncio.run(session.handle_utterance(text))
        render_result(result)

        print("-" * 60)


if __name__ == "__main__":
    main()
