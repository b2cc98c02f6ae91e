# submission_api/models/settings.py
SYSTEM_SETTINGS = "system_settings"

# value is stored as the string "true" / "false"
SUBMISSION_OPEN_KEY = "submission_open"
