"""
Need Specification - what a deck is missing.

The record arrives from an external inference step as loosely-typed JSON.
It is validated once here; the scorer only ever sees a NeedSpecification
whose every field holds a usable value.

Neutral defaults:
- Role flags: False
- Term lists: empty
- Counts and min_power: None
- Curve note: empty string

Null values are read as "no preference" and replaced by the neutral default.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from deckmender.models.failure import FailureKind, KnownError

_FLAG_FIELDS = (
    "needs_removal",
    "needs_ramp",
    "needs_card_draw",
    "needs_board_wipes",
    "needs_counterspells",
    "needs_protection",
    "needs_land_fetch",
    "needs_graveyard",
    "needs_tokens",
    "needs_tutor",
    "want_big_creatures",
)

_LIST_FIELDS = (
    "gaps",
    "wanted_keywords",
    "wanted_creature_types",
    "synergy_oracle_terms",
    "additional_oracle_terms",
)


class NeedSpecificationError(KnownError):
    """Raised when a need specification has the wrong shape."""

    def __init__(self, detail: str):
        super().__init__(
            kind=FailureKind.INVALID_INPUT,
            message="The deck needs description is malformed.",
            detail=detail,
            suggestion="Send an object with role flags and term lists, or request new needs.",
            status_code=422,
        )


class NeedSpecification(BaseModel):
    """
    Structured description of a deck's strategic gaps.

    Field names are snake_case; the camelCase names used in JSON payloads
    (e.g. "needsRemoval", "synergyOracleTerms") are accepted as aliases.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    deck_strategy: str = ""
    gaps: list[str] = Field(default_factory=list)

    # Role flags
    needs_removal: bool = False
    needs_ramp: bool = False
    needs_card_draw: bool = False
    needs_board_wipes: bool = False
    needs_counterspells: bool = False
    needs_protection: bool = False
    needs_land_fetch: bool = False
    needs_graveyard: bool = False
    needs_tokens: bool = False
    needs_tutor: bool = False

    # Current and ideal role counts
    removal_count: int | None = Field(default=None, ge=0)
    ramp_count: int | None = Field(default=None, ge=0)
    card_draw_count: int | None = Field(default=None, ge=0)
    ideal_removal_count: int | None = Field(default=None, ge=0)
    ideal_ramp_count: int | None = Field(default=None, ge=0)
    ideal_card_draw_count: int | None = Field(default=None, ge=0)

    # Search terms
    wanted_keywords: list[str] = Field(default_factory=list)
    wanted_creature_types: list[str] = Field(default_factory=list)
    synergy_oracle_terms: list[str] = Field(default_factory=list)
    additional_oracle_terms: list[str] = Field(default_factory=list)

    want_big_creatures: bool = False
    min_power: int | None = Field(default=None, ge=0)

    cmc_curve_note: str = ""

    @field_validator(*_FLAG_FIELDS, mode="before")
    @classmethod
    def _null_flag_is_false(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator(*_LIST_FIELDS, mode="before")
    @classmethod
    def _null_list_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator(*_LIST_FIELDS)
    @classmethod
    def _drop_blank_terms(cls, value: list[str]) -> list[str]:
        # A blank term would match every card by substring
        return [term.strip() for term in value if term and term.strip()]

    @field_validator("deck_strategy", "cmc_curve_note", mode="before")
    @classmethod
    def _null_text_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    def wants_anything(self) -> bool:
        """True if any signal could give a card a non-zero score."""
        if any(getattr(self, name) for name in _LIST_FIELDS if name != "gaps"):
            return True
        if any(getattr(self, name) for name in _FLAG_FIELDS if name != "want_big_creatures"):
            return True
        if self.want_big_creatures and self.min_power:
            return True
        return bool(self.cmc_curve_note)

    @classmethod
    def from_payload(cls, payload: Any) -> "NeedSpecification":
        """
        Validate an untrusted payload.

        Raises:
            NeedSpecificationError: If the payload is not an object or a
                field has the wrong shape (e.g. a string where a list belongs)
        """
        if payload is None:
            return cls()
        if not isinstance(payload, dict):
            raise NeedSpecificationError(
                f"Expected an object, got {type(payload).__name__}"
            )
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise NeedSpecificationError(str(e)) from e
