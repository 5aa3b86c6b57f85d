"""Constants and default values."""

# Reminder categories and their notification icons
CATEGORIES = ["water", "fertilize", "prune", "repot", "other"]

CATEGORY_ICONS = {
    "water": "💧",
    "fertilize": "🌱",
    "prune": "✂️",
    "repot": "🪴",
    "other": "📅",
}

# Recurrence options (informational only)
RECURRENCES = ["none", "daily", "weekly", "biweekly", "monthly"]

# Notification permission states
PERMISSION_DEFAULT = "default"
PERMISSION_GRANTED = "granted"
PERMISSION_DENIED = "denied"

# Notification payload defaults
NOTIFICATION_TITLE_PREFIX = "Plant Care: "
NOTIFICATION_TAG_PREFIX = "reminder-"
NOTIFICATION_VIEW_URL = "reminders"
PUSH_DEFAULT_TITLE = "GreenHealth Reminder"
PUSH_DEFAULT_BODY = "Time for your plant care task!"
PUSH_DEFAULT_TAG = "reminder"
SUMMARY_TAG = "reminders-today"

# Limits
MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 1000
MAX_PLANT_NAME_LENGTH = 100
