from enum import Enum

# ==============================================================================
# Record Field Configuration
# ==============================================================================

# Wire field names are part of the backend contract (casing matters)
FIELD_ID = "Id"
FIELD_NAME = "Name"
FIELD_ACCOUNT_ID = "AccountId"
FIELD_ACCOUNT_NAME = "AccountName"
FIELD_STAGE_NAME = "StageName"
FIELD_CLOSE_DATE = "CloseDate"
FIELD_IS_PRIVATE = "IsPrivate"

# Wire name -> Record/EditableFields attribute name
FIELD_ATTRS: dict[str, str] = {
    FIELD_ID: "id",
    FIELD_NAME: "name",
    FIELD_ACCOUNT_ID: "account_id",
    FIELD_ACCOUNT_NAME: "account_name",
    FIELD_STAGE_NAME: "stage_name",
    FIELD_CLOSE_DATE: "close_date",
    FIELD_IS_PRIVATE: "is_private",
}

# Fields compared against the snapshot for dirty detection
TRACKED_FIELDS: tuple[str, ...] = (
    FIELD_NAME,
    FIELD_ACCOUNT_ID,
    FIELD_STAGE_NAME,
    FIELD_CLOSE_DATE,
    FIELD_IS_PRIVATE,
)

# Fields matched by the grid search box
SEARCHABLE_FIELDS: tuple[str, ...] = (FIELD_NAME, FIELD_ACCOUNT_NAME, FIELD_STAGE_NAME)

# Used by CsvDataSource when no stage file exists
DEFAULT_STAGE_OPTIONS: tuple[str, ...] = (
    "Prospecting",
    "Qualification",
    "Needs Analysis",
    "Value Proposition",
    "Proposal/Price Quote",
    "Negotiation/Review",
    "Closed Won",
    "Closed Lost",
)


class FieldGroup(str, Enum):
    """Field groups that carry their own edit-mode flag."""

    NAME = "Name"
    ACCOUNT = "Account"
    STAGE = "Stage"
    CLOSE_DATE = "CloseDate"
    IS_PRIVATE = "IsPrivate"
    GENERIC = "Generic"


# Field (wire name or short alias) -> edit group. Anything missing is GENERIC.
FIELD_GROUPS: dict[str, FieldGroup] = {
    FIELD_NAME: FieldGroup.NAME,
    "Account": FieldGroup.ACCOUNT,
    FIELD_ACCOUNT_ID: FieldGroup.ACCOUNT,
    FIELD_ACCOUNT_NAME: FieldGroup.ACCOUNT,
    "Stage": FieldGroup.STAGE,
    FIELD_STAGE_NAME: FieldGroup.STAGE,
    FIELD_CLOSE_DATE: FieldGroup.CLOSE_DATE,
    FIELD_IS_PRIVATE: FieldGroup.IS_PRIVATE,
}


class Severity(str, Enum):
    """Notification severity levels."""

    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    WARNING = "warning"


# ==============================================================================
# Timing Defaults (milliseconds)
# ==============================================================================

SEARCH_DEBOUNCE_MS = 300
LOOKUP_BLUR_GRACE_MS = 200
EDIT_GRACE_MS = 100
TASK_POLL_INTERVAL_MS = 50
EDITOR_POLL_MS = 50

# Lookup searches only run once the term has at least this many characters
MIN_SEARCH_LENGTH = 2
