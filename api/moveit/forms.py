"""Section catalogues, completion bookkeeping and status transitions.

Everything here is pure: it works on plain mappings of section key to value,
so the store can compute the next state from exactly what it is about to
persist.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, StrictBool, StrictStr, TypeAdapter, ValidationError

from .errors import IncompleteForm, InvalidSection


class FormType(str, Enum):
    DISCLOSURE = "disclosure"
    CHECKLIST = "checklist"


OBJECT = "object"
LIST = "list"
BOOLEAN = "boolean"
TEXT = "text"
CHOICE = "choice"
CATEGORY = "category"

IN_PROGRESS = "in_progress"
COMPLETED = "completed"
SIGNED = "signed"


class ChecklistItem(BaseModel):
    checked: StrictBool = False
    notes: str = ""


_ADAPTERS = {
    OBJECT: TypeAdapter(Optional[Dict[str, Any]]),
    LIST: TypeAdapter(Optional[List[Any]]),
    BOOLEAN: TypeAdapter(Optional[StrictBool]),
    TEXT: TypeAdapter(Optional[StrictStr]),
    CHOICE: TypeAdapter(Optional[Literal["yes", "no", "unknown"]]),
}
_HAS_HOA = TypeAdapter(StrictBool)


def _clean_category(value):
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValueError("category must be an object of checklist items")
    cleaned = {}
    for key, item in value.items():
        if key == "has_hoa":
            cleaned[key] = _HAS_HOA.validate_python(item)
        else:
            cleaned[key] = ChecklistItem.model_validate(item).model_dump()
    return cleaned


@dataclass(frozen=True)
class SectionSpec:
    key: str
    kind: str
    title: str
    required: bool = False

    def clean(self, value):
        try:
            if self.kind == CATEGORY:
                return _clean_category(value)
            return _ADAPTERS[self.kind].validate_python(value)
        except (ValidationError, ValueError) as exc:
            raise InvalidSection(
                f"invalid payload for section {self.key}",
                {"section": self.key, "errors": _error_messages(exc)},
            )


def _error_messages(exc) -> List[str]:
    if isinstance(exc, ValidationError):
        return [e["msg"] for e in exc.errors()]
    return [str(exc)]


def is_filled(spec: SectionSpec, value) -> bool:
    if value is None:
        return False
    if spec.kind == BOOLEAN:
        return True
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (dict, list)):
        return len(value) > 0
    return True


@dataclass
class ValidationResult:
    valid: bool
    completion: int
    missing_sections: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "completion": self.completion,
            "missing_sections": self.missing_sections,
            "errors": self.errors,
            "warnings": self.warnings,
        }


@dataclass(frozen=True)
class FormDefinition:
    form_type: FormType
    empty_status: str
    statuses: Tuple[str, ...]
    sections: Tuple[SectionSpec, ...]
    rules: Tuple[Callable[[Mapping[str, Any]], Optional[str]], ...] = ()
    advisories: Tuple[Callable[[Mapping[str, Any]], Optional[str]], ...] = ()

    @property
    def section_keys(self) -> List[str]:
        return [s.key for s in self.sections]

    @property
    def required(self) -> List[SectionSpec]:
        return [s for s in self.sections if s.required]

    def spec(self, key: str) -> SectionSpec:
        for s in self.sections:
            if s.key == key:
                return s
        raise InvalidSection(
            f"unknown section {key!r} for {self.form_type.value}",
            {"section": key, "allowed": self.section_keys},
        )

    def clean_section(self, key: str, value):
        return self.spec(key).clean(value)

    def values_of(self, document) -> Dict[str, Any]:
        return {key: getattr(document, key) for key in self.section_keys}


def completion_percentage(definition: FormDefinition, values: Mapping[str, Any]) -> int:
    """Share of required sections that are filled, rounded half up.

    Integer arithmetic keeps the rounding exact: 1 of 3 is 33, 2 of 3 is 67.
    """
    required = definition.required
    if not required:
        return 0
    filled = sum(1 for s in required if is_filled(s, values.get(s.key)))
    total = len(required)
    return (200 * filled + total) // (2 * total)


def validate_values(definition: FormDefinition, values: Mapping[str, Any]) -> ValidationResult:
    missing = [s.key for s in definition.required if not is_filled(s, values.get(s.key))]
    errors = [msg for msg in (rule(values) for rule in definition.rules) if msg]
    warnings = [msg for msg in (rule(values) for rule in definition.advisories) if msg]
    return ValidationResult(
        valid=not missing and not errors,
        completion=completion_percentage(definition, values),
        missing_sections=missing,
        errors=errors,
        warnings=warnings,
    )


def section_summary(definition: FormDefinition, values: Mapping[str, Any]) -> Dict[str, dict]:
    summary = {}
    for s in definition.required:
        value = values.get(s.key)
        entry = {"name": s.title, "completed": is_filled(s, value)}
        if s.kind == CATEGORY:
            items = [v for k, v in (value or {}).items() if k != "has_hoa" and isinstance(v, dict)]
            entry["checked"] = sum(1 for v in items if v.get("checked"))
            entry["total"] = len(items)
            if "has_hoa" in (value or {}):
                entry["applicable"] = value["has_hoa"] is not False
        summary[s.key] = entry
    return summary


# ---------- status transitions ----------

def advance_on_section_save(definition: FormDefinition, status: str, values: Mapping[str, Any]) -> str:
    """Leave the empty state once any section holds data; never auto-complete."""
    if status != definition.empty_status:
        return status
    if any(is_filled(s, values.get(s.key)) for s in definition.sections):
        return IN_PROGRESS
    return status


def reopen_on_edit(status: str, changed: bool) -> str:
    if changed and status == COMPLETED:
        return IN_PROGRESS
    return status


def complete_if_valid(status: str, result: ValidationResult) -> str:
    if status in (COMPLETED, SIGNED):
        return status
    if not result.valid:
        raise IncompleteForm(
            "complete all required sections before submitting",
            missing_sections=result.missing_sections,
            errors=result.errors,
        )
    return COMPLETED


SIGNATURE_SLOTS = {
    "seller1": "seller",
    "seller2": "seller",
    "buyer1": "buyer",
    "buyer2": "buyer",
}
REQUIRED_SELLER_SLOTS = ("seller1",)


def signature_column(slot: str) -> str:
    return f"{slot}_signature"


def sign_if_slots_filled(status: str, signatures: Mapping[str, Any]) -> str:
    """Completed disclosures become signed once every required seller slot holds a signature."""
    if status != COMPLETED:
        return status
    if all(signatures.get(slot) for slot in REQUIRED_SELLER_SLOTS):
        return SIGNED
    return status


# ---------- catalogues ----------

def _has_text(value) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _explain_if(flag: str, explanation: str, message: str):
    def rule(values):
        if values.get(flag) is True and not _has_text(values.get(explanation)):
            return message
        return None
    return rule


def _explain_any(flags: str, explanation: str, message: str):
    def rule(values):
        marked = any(v is True for v in (values.get(flags) or {}).values())
        if marked and not _has_text(values.get(explanation)):
            return message
        return None
    return rule


def _reports_listed(values):
    if values.get("section9_has_reports") is True and not values.get("section9_reports"):
        return "List the inspection reports indicated in section 9"
    return None


def _smoke_detectors_explained(values):
    if values.get("section13_smoke_detectors") == "no" and not _has_text(values.get("section13_explanation")):
        return "Explain why smoke detectors are missing (section 13)"
    return None


def _few_property_items(values):
    if len(values.get("section1_property_items") or {}) < 5:
        return "Consider reviewing more property items (section 1)"
    return None


def _no_utilities(values):
    if not values.get("utility_providers"):
        return "Utility provider information is recommended"
    return None


DISCLOSURE = FormDefinition(
    form_type=FormType.DISCLOSURE,
    empty_status="draft",
    statuses=("draft", IN_PROGRESS, COMPLETED, SIGNED),
    sections=(
        SectionSpec("header_data", OBJECT, "Header"),
        SectionSpec("section1_property_items", OBJECT, "Property Items", True),
        SectionSpec("section1_water_supply", OBJECT, "Water Supply"),
        SectionSpec("section1_roof_info", OBJECT, "Roof"),
        SectionSpec("section1_defects_explanation", TEXT, "Property Items Explanation"),
        SectionSpec("section2_defects", OBJECT, "Defects/Malfunctions", True),
        SectionSpec("section2_explanation", TEXT, "Defects Explanation"),
        SectionSpec("section3_conditions", OBJECT, "Conditions", True),
        SectionSpec("section3_explanation", TEXT, "Conditions Explanation"),
        SectionSpec("section4_additional_repairs", BOOLEAN, "Additional Repairs", True),
        SectionSpec("section4_explanation", TEXT, "Repairs Explanation"),
        SectionSpec("section5_flood_data", OBJECT, "Flood Conditions", True),
        SectionSpec("section5_explanation", TEXT, "Flood Explanation"),
        SectionSpec("section6_flood_claim", BOOLEAN, "Flood Claims", True),
        SectionSpec("section6_explanation", TEXT, "Flood Claims Explanation"),
        SectionSpec("section7_fema_assistance", BOOLEAN, "FEMA/SBA Assistance", True),
        SectionSpec("section7_explanation", TEXT, "FEMA/SBA Explanation"),
        SectionSpec("section8_conditions", OBJECT, "Legal/HOA", True),
        SectionSpec("section8_hoa_details", OBJECT, "HOA Details"),
        SectionSpec("section8_common_areas", OBJECT, "Common Areas"),
        SectionSpec("section8_explanation", TEXT, "Legal/HOA Explanation"),
        SectionSpec("section9_has_reports", BOOLEAN, "Inspection Reports", True),
        SectionSpec("section9_reports", LIST, "Inspection Report List"),
        SectionSpec("section10_exemptions", LIST, "Tax Exemptions", True),
        SectionSpec("section11_insurance_claims", BOOLEAN, "Insurance Claims", True),
        SectionSpec("section12_unremediated_claims", BOOLEAN, "Unremediated Claims", True),
        SectionSpec("section12_explanation", TEXT, "Unremediated Claims Explanation"),
        SectionSpec("section13_smoke_detectors", CHOICE, "Smoke Detectors", True),
        SectionSpec("section13_explanation", TEXT, "Smoke Detectors Explanation"),
        SectionSpec("utility_providers", OBJECT, "Utilities"),
    ),
    rules=(
        _explain_any("section2_defects", "section2_explanation", "Explain the defects marked in section 2"),
        _explain_any("section3_conditions", "section3_explanation", "Explain the conditions marked in section 3"),
        _explain_if("section4_additional_repairs", "section4_explanation", "Describe the additional repairs needed (section 4)"),
        _explain_if("section6_flood_claim", "section6_explanation", "Explain the flood insurance claim (section 6)"),
        _explain_if("section7_fema_assistance", "section7_explanation", "Explain the FEMA/SBA assistance received (section 7)"),
        _explain_if("section12_unremediated_claims", "section12_explanation", "Explain the unremediated claims (section 12)"),
        _reports_listed,
        _smoke_detectors_explained,
    ),
    advisories=(_few_property_items, _no_utilities),
)

CHECKLIST = FormDefinition(
    form_type=FormType.CHECKLIST,
    empty_status="not_started",
    statuses=("not_started", IN_PROGRESS, COMPLETED),
    sections=(
        SectionSpec("property_details", CATEGORY, "Property Details", True),
        SectionSpec("hoa_info", CATEGORY, "HOA Information", True),
        SectionSpec("ownership_legal", CATEGORY, "Ownership & Legal", True),
        SectionSpec("pricing", CATEGORY, "Pricing", True),
        SectionSpec("property_condition", CATEGORY, "Property Condition", True),
        SectionSpec("photos_marketing", CATEGORY, "Photos & Marketing", True),
        SectionSpec("showings", CATEGORY, "Showings", True),
        SectionSpec("offers_closing", CATEGORY, "Offers & Closing", True),
    ),
)

FORMS = {FormType.DISCLOSURE: DISCLOSURE, FormType.CHECKLIST: CHECKLIST}
