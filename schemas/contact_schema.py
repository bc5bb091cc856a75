"""
Contact Sheet Schema - 42-Column CRM Definition

Single source of truth for the canonical contact record:
- Field key, exact sheet header label, semantic group, default column letter
- Validation kind per field (drives services.validator)
- Input-type hints for the edit form
- Malaysian state enumeration and common aliases

Column letters are the positions in a freshly created sheet only. Live
column positions are always re-derived from the sheet's header row.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, List, Optional


class FieldKind(str, Enum):
    """Semantic validation kind of a field."""
    TEXT = "text"
    POSTCODE = "postcode"
    STATE = "state"
    PHONE = "phone"
    EMAIL = "email"
    URL = "url"
    DATE = "date"
    LONGITUDE = "longitude"
    LATITUDE = "latitude"


class InputType(str, Enum):
    """Form input hint for the UI."""
    TEXT = "text"
    EMAIL = "email"
    URL = "url"
    DATE = "date"
    NUMBER = "number"
    DROPDOWN = "dropdown"
    CHECKBOX = "checkbox"


@dataclass(frozen=True)
class ColumnDef:
    """Column definition."""
    key: str
    label: str                 # Exact sheet header
    group: str
    col_letter: str            # Advisory position in a fresh sheet
    kind: FieldKind = FieldKind.TEXT
    input_type: InputType = InputType.TEXT
    force_text: bool = False   # Keep digit runs as text in CSV exports


@dataclass(frozen=True)
class RowHandle:
    """
    External row handle: the 1-based physical row number in the sheet.

    Row 1 is always the header row. The handle is only valid for the sheet
    snapshot it was read from; inserting or deleting rows in the sheet
    invalidates outstanding handles.
    """
    number: int

    @property
    def is_data_row(self) -> bool:
        return self.number >= 2

    def __int__(self) -> int:
        return self.number

    def __str__(self) -> str:
        return str(self.number)


HEADER_ROW = 1

# Marker key carrying the physical row number in raw row dicts
ROW_INDEX_KEY = "_rowIndex"

# Semantic groups (display order). Group membership is configuration data.
COLUMN_GROUPS: Dict[str, str] = {
    "personal": "Personal Info",
    "company": "Company Info",
    "location": "Location",
    "billing": "Billing",
    "shipping": "Shipping",
    "online": "Online",
    "business": "Business",
}


# =============================================================================
# SCHEMA COLUMNS
# =============================================================================

COLUMNS: List[ColumnDef] = [
    # Personal
    ColumnDef("firstname", "Firstname", "personal", "A"),
    ColumnDef("lastname", "Lastname", "personal", "B"),
    ColumnDef("email", "Email", "personal", "C", FieldKind.EMAIL, InputType.EMAIL),
    ColumnDef("contact_phone", "Contact phonenumber", "personal", "D",
              FieldKind.PHONE, force_text=True),

    # Company
    ColumnDef("position", "Position", "company", "E"),
    ColumnDef("company_name", "Name", "company", "F"),
    ColumnDef("vat", "Vat", "company", "G", force_text=True),
    ColumnDef("phonenumber", "Phonenumber", "company", "H",
              FieldKind.PHONE, force_text=True),

    # Location
    ColumnDef("country", "Country", "location", "I"),
    ColumnDef("city", "City", "location", "J"),
    ColumnDef("zip", "Zip", "location", "K", FieldKind.POSTCODE, force_text=True),
    ColumnDef("state", "State", "location", "L", FieldKind.STATE, InputType.DROPDOWN),
    ColumnDef("address", "Address", "location", "M"),
    ColumnDef("website", "Website", "online", "N", FieldKind.URL, InputType.URL),

    # Billing
    ColumnDef("billing_street", "Billing street", "billing", "O"),
    ColumnDef("billing_city", "Billing city", "billing", "P"),
    ColumnDef("billing_state", "Billing state", "billing", "Q",
              FieldKind.STATE, InputType.DROPDOWN),
    ColumnDef("billing_zip", "Billing zip", "billing", "R",
              FieldKind.POSTCODE, force_text=True),
    ColumnDef("billing_country", "Billing country", "billing", "S"),

    # Shipping
    ColumnDef("shipping_street", "Shipping street", "shipping", "T"),
    ColumnDef("shipping_city", "Shipping city", "shipping", "U"),
    ColumnDef("shipping_state", "Shipping state", "shipping", "V",
              FieldKind.STATE, InputType.DROPDOWN),
    ColumnDef("shipping_zip", "Shipping zip", "shipping", "W",
              FieldKind.POSTCODE, force_text=True),
    ColumnDef("shipping_country", "Shipping country", "shipping", "X"),

    # Geo
    ColumnDef("longitude", "Longitude", "online", "Y", FieldKind.LONGITUDE, InputType.NUMBER),
    ColumnDef("latitude", "Latitude", "online", "Z", FieldKind.LATITUDE, InputType.NUMBER),

    # Business
    ColumnDef("stripe_id", "Stripe id", "business", "AA"),
    ColumnDef("affiliate_code", "Affiliate code", "business", "AB"),
    ColumnDef("loy_point", "Loy point", "business", "AC", input_type=InputType.NUMBER),
    ColumnDef("woo_customer", "Woo customer id", "business", "AD"),
    ColumnDef("woo_channel", "Woo channel id", "business", "AE"),
    ColumnDef("client_type", "Client type", "business", "AF"),
    ColumnDef("balance", "Balance", "business", "AG", input_type=InputType.NUMBER),
    ColumnDef("balance_as", "Balance as of", "business", "AH", input_type=InputType.NUMBER),
    ColumnDef("auto_invoice", "Auto invoice", "business", "AI", input_type=InputType.CHECKBOX),
    ColumnDef("email_address", "Email address", "business", "AJ",
              FieldKind.EMAIL, InputType.EMAIL),
    ColumnDef("is_non_individual", "Is non individual", "business", "AK",
              input_type=InputType.CHECKBOX),
    ColumnDef("bukku_id", "Bukku id", "business", "AL"),
    ColumnDef("birthday", "Birthday", "business", "AM", FieldKind.DATE, InputType.DATE),
    ColumnDef("terms_conditions", "Terms & Conditions", "business", "AN"),
    ColumnDef("identification", "Identification Type", "business", "AO"),
    ColumnDef("identification_no", "Identification No", "business", "AP", force_text=True),
]

# Required for "Lengkap" (complete) status
REQUIRED_FOR_COMPLETE: List[str] = ["firstname", "contact_phone", "zip", "address", "state"]


# =============================================================================
# MALAYSIAN STATES
# =============================================================================

MALAYSIAN_STATES: List[str] = [
    "Johor",
    "Kedah",
    "Kelantan",
    "Melaka",
    "Negeri Sembilan",
    "Pahang",
    "Perak",
    "Perlis",
    "Pulau Pinang",
    "Sabah",
    "Sarawak",
    "Selangor",
    "Terengganu",
    "WP Kuala Lumpur",
    "WP Putrajaya",
    "WP Labuan",
]

# Lowercase alias -> canonical state
STATE_ALIASES: Dict[str, str] = {
    "kl": "WP Kuala Lumpur",
    "kuala lumpur": "WP Kuala Lumpur",
    "wp kl": "WP Kuala Lumpur",
    "wilayah persekutuan kuala lumpur": "WP Kuala Lumpur",
    "federal territory of kuala lumpur": "WP Kuala Lumpur",
    "putrajaya": "WP Putrajaya",
    "wilayah persekutuan putrajaya": "WP Putrajaya",
    "federal territory of putrajaya": "WP Putrajaya",
    "labuan": "WP Labuan",
    "wilayah persekutuan labuan": "WP Labuan",
    "federal territory of labuan": "WP Labuan",
    "penang": "Pulau Pinang",
    "pinang": "Pulau Pinang",
    "n. sembilan": "Negeri Sembilan",
    "n.sembilan": "Negeri Sembilan",
    "ns": "Negeri Sembilan",
    "malacca": "Melaka",
    "johor bahru": "Johor",
    "jb": "Johor",
    "trengganu": "Terengganu",
}


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

_BY_KEY: Dict[str, ColumnDef] = {col.key: col for col in COLUMNS}
_BY_LABEL: Dict[str, ColumnDef] = {col.label: col for col in COLUMNS}


def get_column_keys() -> List[str]:
    """Get ordered list of canonical field keys."""
    return [col.key for col in COLUMNS]


def get_all_headers() -> List[str]:
    """Get ordered list of header labels for a fresh sheet."""
    return [col.label for col in COLUMNS]


def get_column_by_key(key: str) -> Optional[ColumnDef]:
    """Get column definition by field key."""
    return _BY_KEY.get(key)


def get_column_by_label(label: str) -> Optional[ColumnDef]:
    """Get column definition by exact header label."""
    return _BY_LABEL.get(label)


def get_columns_by_group(group: str) -> List[ColumnDef]:
    """Get column definitions in a group."""
    return [col for col in COLUMNS if col.group == group]


def get_group_column_counts() -> Dict[str, int]:
    """Number of columns per group."""
    return {group: len(get_columns_by_group(group)) for group in COLUMN_GROUPS}


def get_field_input_type(key: str) -> InputType:
    """Input hint for a field (text when unknown)."""
    col = _BY_KEY.get(key)
    return col.input_type if col else InputType.TEXT


def column_index_to_letter(index: int) -> str:
    """Convert 0-based column index to Excel-style letter."""
    result = ""
    while index >= 0:
        result = chr(index % 26 + ord('A')) + result
        index = index // 26 - 1
    return result


def column_letter_to_index(letter: str) -> int:
    """Convert Excel-style letter to 0-based column index."""
    index = 0
    for ch in letter.strip().upper():
        if not "A" <= ch <= "Z":
            raise ValueError(f"Invalid column letter: {letter}")
        index = index * 26 + (ord(ch) - ord("A") + 1)
    if index == 0:
        raise ValueError(f"Invalid column letter: {letter}")
    return index - 1


def get_schema_info() -> Dict:
    """Export the registry for the frontend."""
    return {
        "columns": [
            {
                **asdict(col),
                "kind": col.kind.value,
                "input_type": col.input_type.value,
            }
            for col in COLUMNS
        ],
        "groups": [
            {"key": key, "label": label, "count": len(get_columns_by_group(key))}
            for key, label in COLUMN_GROUPS.items()
        ],
        "states": list(MALAYSIAN_STATES),
        "required_for_complete": list(REQUIRED_FOR_COMPLETE),
        "total_columns": len(COLUMNS),
    }
