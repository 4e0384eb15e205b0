"""Typed change variants and draft validation for story change logs."""

from __future__ import annotations

import datetime as dt
from collections.abc import Mapping
from typing import Any, Literal, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from deploy_tracker.domain.errors import ValidationError
from deploy_tracker.domain.models import CHANGE_TYPES, Change, ChangeType

FieldType = Literal["Text", "Number", "Date", "Checkbox", "Picklist"]
LwcFileType = Literal["html", "js", "css", "xml"]


class ChangeDetailsModel(BaseModel):
    """Base model config shared by every change variant."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        populate_by_name=True,
    )

    date: dt.date
    note: str = ""

    @field_validator("note", mode="before")
    @classmethod
    def _null_note_is_empty(cls, value: object) -> object:
        return "" if value is None else value

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class FieldChangeDetails(ChangeDetailsModel):
    """A custom field was created."""

    api_name: str = Field(alias="apiName", min_length=1)
    label: str = Field(min_length=1)
    field_type: FieldType = Field(alias="fieldType")


class LwcChangeDetails(ChangeDetailsModel):
    """A Lightning web component file was edited."""

    component_name: str = Field(alias="componentName", min_length=1)
    file_type: LwcFileType = Field(alias="fileType")
    code: str | None = None


class ProfileChangeDetails(ChangeDetailsModel):
    """A profile was edited."""

    profile: str = Field(min_length=1)


class PermissionAccess(BaseModel):
    """Read/write grant recorded with a permission change."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    read: bool = False
    write: bool = False


class PermissionChangeDetails(ChangeDetailsModel):
    """A permission inside a permission set was edited."""

    permission_set: str = Field(alias="permissionSet", min_length=1)
    permission: str = Field(min_length=1)
    access: PermissionAccess = Field(default_factory=PermissionAccess)

    @field_validator("access", mode="before")
    @classmethod
    def _null_access_grants_nothing(cls, value: object) -> object:
        return PermissionAccess() if value is None else value


ChangeDetails = (
    FieldChangeDetails | LwcChangeDetails | ProfileChangeDetails | PermissionChangeDetails
)

_DETAIL_MODELS: dict[ChangeType, type[ChangeDetailsModel]] = {
    "Field": FieldChangeDetails,
    "LWC": LwcChangeDetails,
    "Profile": ProfileChangeDetails,
    "Permission": PermissionChangeDetails,
}

_MISSING_FIELDS_MESSAGES: dict[ChangeType, str] = {
    "Field": "Please fill in all required fields for Field Change.",
    "LWC": "Please fill in all required fields for LWC Change.",
    "Profile": "Please enter a profile name.",
    "Permission": "Please fill in all required fields for Permission Change.",
}


def parse_change_type(value: object) -> ChangeType:
    """Return ``value`` as a known change type or raise ``ValidationError``."""
    for change_type in CHANGE_TYPES:
        if value == change_type:
            return change_type
    raise ValidationError("Invalid change type.")


def details_model(change_type: ChangeType) -> type[ChangeDetailsModel]:
    return _DETAIL_MODELS[change_type]


def required_fields(change_type: ChangeType) -> tuple[str, ...]:
    """Stored (camelCase) names of the fields a variant cannot omit."""
    model = details_model(change_type)
    return tuple(
        info.alias or name for name, info in model.model_fields.items() if info.is_required()
    )


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _draft_value(draft: Mapping[str, Any], change_type: ChangeType, stored_name: str) -> object:
    if stored_name in draft:
        return draft[stored_name]
    for name, info in details_model(change_type).model_fields.items():
        if info.alias == stored_name:
            return draft.get(name)
    return None


def _first_error_message(exc: PydanticValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid change details."
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = str(first.get("msg", "invalid value"))
    if location:
        return f"Invalid change details: {location}: {message}."
    return f"Invalid change details: {message}."


def validate_change(change_type: object, draft: Mapping[str, Any]) -> ChangeDetails:
    """Validate a draft against the schema for ``change_type``.

    Pure function: no store access. Raises ``ValidationError`` when a required field is
    blank or when the draft does not fit the variant shape.
    """
    kind = parse_change_type(change_type)
    if _is_blank(_draft_value(draft, kind, "date")):
        raise ValidationError("Please select a date for the change.")
    for stored_name in required_fields(kind):
        if _is_blank(_draft_value(draft, kind, stored_name)):
            raise ValidationError(_MISSING_FIELDS_MESSAGES[kind])
    try:
        details = details_model(kind).model_validate(dict(draft))
    except PydanticValidationError as exc:
        raise ValidationError(_first_error_message(exc)) from exc
    return cast(ChangeDetails, details)


def change_to_document(change: Change) -> dict[str, Any]:
    """Serialize one change into its persisted ``{id, type, details}`` layout."""
    return {
        "id": change.id,
        "type": change.type,
        "details": change.details.to_document(),
    }


def change_from_document(payload: Mapping[str, Any]) -> Change:
    """Rebuild a change from its persisted layout, re-checking the variant schema."""
    if not isinstance(payload, Mapping):
        raise ValidationError("Stored change must be an object.")
    change_id = payload.get("id")
    if not isinstance(change_id, str) or not change_id:
        raise ValidationError("Stored change is missing an id.")
    details = payload.get("details")
    if not isinstance(details, Mapping):
        raise ValidationError(f"Stored change {change_id} has no details object.")
    kind = parse_change_type(payload.get("type"))
    return Change(id=change_id, type=kind, details=validate_change(kind, details))
