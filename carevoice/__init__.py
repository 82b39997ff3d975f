"""CareVoice: voice-command routing and conversation memory for a senior care app."""
