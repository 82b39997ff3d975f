"""Memory subsystem package.

Architectural role:
    Groups the stateful components used by a session:
    - `conversation_memory`: pending route suggestions and volunteer context.
    - `medication_store`: file-backed medication records.
    - `reminder_schedule`: daily reminder entries per medication.
"""
