"""Constants for timetable building."""

# Weekdays of the teaching week, in display order
DEFAULT_DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

# Teaching intervals, one hour each
DEFAULT_INTERVALS = [
    "09:00 - 10:00",
    "10:00 - 11:00",
    "11:00 - 12:00",
    "12:00 - 13:00",
    "13:00 - 14:00",
    "14:00 - 15:00",
    "15:00 - 16:00",
    "16:00 - 17:00",
]

# Load thresholds (percent of maximum weekly hours)
OVERLOADED_THRESHOLD = 90
NEARLY_FULL_THRESHOLD = 70

# Maximum weekly hours when a faculty record does not specify one
DEFAULT_MAX_HOURS = 18

# Separator for list values in tabular catalog files (tags, expertise, ...)
LIST_SEPARATOR = ";"

# Catalog file names (looked up with each supported suffix)
CATALOG_COURSES = "courses"
CATALOG_FACULTY = "faculty"
CATALOG_ROOMS = "rooms"
CATALOG_CALENDAR = "calendar.json"
CATALOG_SUFFIXES = (".csv", ".xlsx", ".json")

# Default file names written by the JSON persistence backend
SAVED_FILE_NAME = "timetable.json"
PUBLISHED_FILE_NAME = "published.json"
