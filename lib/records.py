"""
Record types for the data-entry forms.

Four kinds of record are captured:
- farms          — farm registration
- treatments     — antimicrobial-use events (the AMU log)
- prescriptions  — veterinary prescriptions
- lab-results    — residue / pathogen / susceptibility test results

Input is validated with Pydantic. Validated records are flattened to
JSON-compatible dicts for the StateStore. Derived withdrawal fields are
added on read, never stored.
"""

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from lib.catalogue import Catalogue, get_catalogue
from lib.withdrawal import compute_withdrawal

# =============================================================================
# ERRORS
# =============================================================================


class RecordError(ValueError):
    """Invalid record input. Carries per-field messages."""

    def __init__(self, errors: list[dict[str, str]]):
        self.errors = errors
        super().__init__("; ".join(f"{e['field']}: {e['message']}" for e in errors))


def _from_validation_error(exc: ValidationError) -> RecordError:
    errors = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())) or "record"
        msg = err.get("msg", "invalid value")
        # "Value error, ..." prefix comes from ValueError raised in validators
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, ") :]
        errors.append({"field": loc, "message": msg})
    return RecordError(errors)


# =============================================================================
# INPUT MODELS
# =============================================================================


def _choice(v, default):
    """Normalise a select value: blank means default, otherwise lower-case."""
    if v is None or (isinstance(v, str) and not v.strip()):
        return default
    return str(v).strip().lower()


class RecordInput(BaseModel):
    """Shared input behaviour: strip strings, blank optional strings become None."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class FarmInput(RecordInput):
    name: str = Field(min_length=1)
    owner_name: str | None = None
    phone: str | None = None
    district: str | None = None
    state: str | None = None
    species: str = Field(min_length=1)
    culture_system: Literal["pond", "cage", "ras", "biofloc", "raceway"] = "pond"
    area_ha: float | None = Field(default=None, ge=0)
    pond_count: int | None = Field(default=None, ge=0)

    @field_validator("culture_system", mode="before")
    @classmethod
    def default_culture_system(cls, v):
        return _choice(v, "pond")


class TreatmentInput(RecordInput):
    farm_id: str = Field(min_length=1)
    pond_id: str | None = None
    antimicrobial: str = Field(min_length=1)
    drug_class: str | None = None
    reason: str | None = None
    route: Literal["feed", "bath", "water", "injection"] = "feed"
    dose: float | None = Field(default=None, gt=0)
    dose_unit: str | None = None
    quantity_g: float | None = Field(default=None, ge=0)
    start_date: date
    end_date: date
    withdrawal_days: int | None = Field(default=None, ge=0)
    prescription_id: str | None = None

    @field_validator("route", mode="before")
    @classmethod
    def default_route(cls, v):
        return _choice(v, "feed")

    @model_validator(mode="after")
    def end_not_before_start(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class PrescriptionInput(RecordInput):
    farm_id: str = Field(min_length=1)
    vet_name: str = Field(min_length=1)
    vet_registration: str | None = None
    antimicrobial: str = Field(min_length=1)
    dosage: str | None = None
    duration_days: int | None = Field(default=None, ge=1)
    issued_on: date
    notes: str | None = None


class LabResultInput(RecordInput):
    farm_id: str = Field(min_length=1)
    sample_id: str | None = None
    sample_type: Literal["tissue", "water", "sediment", "feed"] = "tissue"
    test_type: Literal["residue", "pathogen", "ast"] = "residue"
    analyte: str = Field(min_length=1)
    value: float | None = None
    unit: str | None = None
    limit_value: float | None = Field(default=None, ge=0)
    outcome: Literal["pass", "fail", "pending"] | None = None
    sampled_on: date
    reported_on: date | None = None

    @field_validator("sample_type", mode="before")
    @classmethod
    def default_sample_type(cls, v):
        return _choice(v, "tissue")

    @field_validator("test_type", mode="before")
    @classmethod
    def default_test_type(cls, v):
        return _choice(v, "residue")

    @field_validator("outcome", mode="before")
    @classmethod
    def lower_outcome(cls, v):
        return _choice(v, None)

    @model_validator(mode="after")
    def reported_not_before_sampled(self):
        if self.reported_on is not None and self.reported_on < self.sampled_on:
            raise ValueError("reported_on must be on or after sampled_on")
        return self


# =============================================================================
# KIND REGISTRY
# =============================================================================


@dataclass(frozen=True)
class RecordKind:
    slug: str
    table: str
    label: str
    id_prefix: str
    model: type[RecordInput]


KINDS: dict[str, RecordKind] = {
    "farms": RecordKind("farms", "farms", "Farms", "farm", FarmInput),
    "treatments": RecordKind("treatments", "treatments", "Treatments", "trt", TreatmentInput),
    "prescriptions": RecordKind(
        "prescriptions", "prescriptions", "Prescriptions", "rx", PrescriptionInput
    ),
    "lab-results": RecordKind("lab-results", "lab_results", "Lab results", "lab", LabResultInput),
}

# Kinds that hang off a farm; deleting the farm removes them.
FARM_CHILD_KINDS = ("treatments", "prescriptions", "lab-results")


def get_kind(slug: str) -> RecordKind:
    """Look up a record kind by slug. Raises ValueError for unknown kinds."""
    kind = KINDS.get(slug)
    if kind is None:
        raise ValueError(f"Unknown record kind: {slug!r}")
    return kind


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


# =============================================================================
# VALIDATE + BUILD
# =============================================================================


def validate_input(slug: str, payload: dict[str, Any]) -> RecordInput:
    """Validate raw form/JSON input for a kind. Raises RecordError."""
    kind = get_kind(slug)
    try:
        return kind.model.model_validate(payload)
    except ValidationError as e:
        raise _from_validation_error(e) from e


def build_record(
    slug: str,
    payload: dict[str, Any],
    catalogue: Catalogue | None = None,
) -> dict[str, Any]:
    """
    Validate *payload* and return a storable record dict with id and created_at.

    Treatments take drug class and withdrawal days from the catalogue when
    not given. Lab results derive their outcome from value vs limit when
    not given. Referential checks (farm exists, ...) are done by the caller
    which owns the store.
    """
    kind = get_kind(slug)
    model = validate_input(slug, payload)
    record = model.model_dump(mode="json")

    if slug == "treatments":
        _fill_treatment_defaults(record, catalogue or get_catalogue())
    elif slug == "lab-results":
        record["outcome"] = derive_outcome(record)

    record["id"] = new_id(kind.id_prefix)
    record["created_at"] = datetime.now().replace(microsecond=0).isoformat()
    return record


def _fill_treatment_defaults(record: dict[str, Any], catalogue: Catalogue) -> None:
    drug = catalogue.get(record["antimicrobial"])
    if drug is not None:
        record["antimicrobial"] = drug.name
        if not record.get("drug_class"):
            record["drug_class"] = drug.drug_class
    if record.get("withdrawal_days") is None:
        if drug is None or drug.default_withdrawal_days is None:
            raise RecordError(
                [
                    {
                        "field": "withdrawal_days",
                        "message": (
                            f"no default withdrawal period for {record['antimicrobial']!r}; "
                            "enter withdrawal days"
                        ),
                    }
                ]
            )
        record["withdrawal_days"] = drug.default_withdrawal_days
    if not record.get("dose_unit"):
        record["dose_unit"] = "mg/kg"


def derive_outcome(record: dict[str, Any]) -> str:
    """Explicit outcome wins; otherwise value vs limit_value; otherwise pending."""
    if record.get("outcome"):
        return record["outcome"]
    value, limit = record.get("value"), record.get("limit_value")
    if value is None or limit is None:
        return "pending"
    return "fail" if value > limit else "pass"


# =============================================================================
# READ-SIDE ENRICHMENT
# =============================================================================


def enrich_treatment(
    record: dict[str, Any],
    catalogue: Catalogue | None = None,
    today: date | None = None,
) -> dict[str, Any]:
    """Return a copy of a treatment with withdrawal status and banned flag."""
    catalogue = catalogue or get_catalogue()
    status = compute_withdrawal(record["end_date"], int(record["withdrawal_days"]), today)
    out = dict(record)
    out["clearance_date"] = status.clearance_date.isoformat()
    out["days_remaining"] = status.days_remaining
    out["cleared"] = status.cleared
    out["withdrawal_status"] = status.status
    out["flagged"] = catalogue.is_banned(record.get("antimicrobial"))
    return out
