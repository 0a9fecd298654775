"""
Serialization and request schemas using Marshmallow.

The ``*Schema`` classes built on ``SQLAlchemyAutoSchema`` convert
models to JSON-friendly representations. Enum columns are dumped by
value so clients see ``"pro"`` rather than ``"PRO"``. Search results are
immutable records rather than ORM rows, so they get plain schemas of
their own. The request schemas at the bottom validate query strings and
JSON bodies before they reach the services.
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate, pre_load, EXCLUDE
from marshmallow_sqlalchemy import SQLAlchemyAutoSchema, auto_field

from .models import (
    AGE_STAGES,
    BEHAVIOUR_ISSUES,
    SERVICE_TYPES,
    Business,
    Council,
    FeaturedPlacement,
    PlacementStatus,
    Region,
    ResourceType,
    Suburb,
    Tier,
)

AU_MOBILE_RE = r"^(\+61|0)?4\d{8}$"


class CouncilSchema(SQLAlchemyAutoSchema):
    """Schema for serialising ``Council`` objects."""

    region = fields.Enum(Region, by_value=True)

    class Meta:
        model = Council
        include_fk = True
        exclude = ("created_at",)


class SuburbSchema(SQLAlchemyAutoSchema):
    """Schema for serialising ``Suburb`` objects."""

    region = fields.Enum(Region, by_value=True)

    class Meta:
        model = Suburb
        include_fk = True
        exclude = ("created_at",)


class BusinessSchema(SQLAlchemyAutoSchema):
    """Schema for serialising ``Business`` objects with their location."""

    resource_type = fields.Enum(ResourceType, by_value=True)
    region = fields.Enum(Region, by_value=True)
    tier = fields.Enum(Tier, by_value=True)
    suburb = fields.Nested(SuburbSchema, only=("id", "name", "postcode", "region", "latitude", "longitude"))
    council = fields.Nested(CouncilSchema, only=("id", "name", "region", "shire"))

    class Meta:
        model = Business
        include_fk = True


class FeaturedPlacementSchema(SQLAlchemyAutoSchema):
    """Schema for serialising ``FeaturedPlacement`` objects."""

    status = fields.Enum(PlacementStatus, by_value=True)
    business = fields.Nested(BusinessSchema, only=("id", "name", "tier"))

    class Meta:
        model = FeaturedPlacement
        include_fk = True


# -- search records ---------------------------------------------------------

class SuburbRecordSchema(Schema):
    id = fields.Int()
    name = fields.Str()
    council_id = fields.Int()
    region = fields.Enum(Region, by_value=True)
    postcode = fields.Str(allow_none=True)
    latitude = fields.Float(allow_none=True)
    longitude = fields.Float(allow_none=True)


class CouncilRecordSchema(Schema):
    id = fields.Int()
    name = fields.Str()
    region = fields.Enum(Region, by_value=True)
    shire = fields.Bool()


class BusinessRecordSchema(Schema):
    """Public shape of a business in search results."""

    id = fields.Int()
    name = fields.Str()
    resource_type = fields.Enum(ResourceType, by_value=True)
    suburb_id = fields.Int()
    council_id = fields.Int()
    region = fields.Enum(Region, by_value=True)
    phone = fields.Str(allow_none=True)
    email = fields.Str(allow_none=True)
    website = fields.Str(allow_none=True)
    description = fields.Str(allow_none=True)
    age_specialties = fields.List(fields.Str())
    behaviour_issues = fields.List(fields.Str())
    service_type_primary = fields.Str(allow_none=True)
    service_type_secondary = fields.List(fields.Str())
    tier = fields.Enum(Tier, by_value=True)
    verified = fields.Bool()
    claimed = fields.Bool()
    created_at = fields.DateTime()
    suburb = fields.Nested(SuburbRecordSchema)
    council = fields.Nested(CouncilRecordSchema)


# -- request schemas ----------------------------------------------------------

class SearchQuerySchema(Schema):
    """Query string of ``GET /api/public/search``."""

    suburb = fields.Str(required=True, validate=validate.Length(min=1, max=255))
    age_stage = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    behaviour_issue = fields.Str(load_default=None, validate=validate.Length(max=100))
    radius_km = fields.Float(load_default=None, validate=validate.Range(min=0, min_inclusive=False))
    page = fields.Int(load_default=1)
    limit = fields.Int(load_default=None, validate=validate.Range(min=1))

    class Meta:
        unknown = EXCLUDE

    @pre_load
    def drop_blank_optionals(self, data, **kwargs):
        # Browsers send ``?behaviour_issue=`` for an untouched select box.
        return {
            key: value
            for key, value in data.items()
            if not (key in ("behaviour_issue", "radius_km", "page", "limit") and value == "")
        }


class PaginationSchema(Schema):
    page = fields.Int(load_default=1, validate=validate.Range(min=1))
    limit = fields.Int(load_default=20, validate=validate.Range(min=1, max=100))

    class Meta:
        unknown = EXCLUDE


class CouncilQuerySchema(PaginationSchema):
    region = fields.Enum(Region, by_value=True, load_default=None)


class SuburbQuerySchema(PaginationSchema):
    council_id = fields.Int(load_default=None)
    region = fields.Enum(Region, by_value=True, load_default=None)
    postcode = fields.Str(load_default=None, validate=validate.Regexp(r"^\d{4}$"))


class ListingSchema(Schema):
    """Body of the trainer portal create/update listing endpoints."""

    name = fields.Str(required=True, validate=validate.Length(min=1, max=200))
    suburb = fields.Str(required=True, validate=validate.Length(min=1, max=255))
    resource_type = fields.Enum(
        ResourceType,
        by_value=True,
        load_default=ResourceType.TRAINER,
        validate=validate.OneOf([ResourceType.TRAINER, ResourceType.BEHAVIOUR_CONSULTANT]),
    )
    address = fields.Str(allow_none=True, validate=validate.Length(max=255))
    phone = fields.Str(allow_none=True, validate=validate.Regexp(AU_MOBILE_RE, error="Invalid Australian phone number."))
    email = fields.Email(allow_none=True)
    website = fields.Url(allow_none=True)
    description = fields.Str(allow_none=True, validate=validate.Length(max=2000))
    age_specialties = fields.List(
        fields.Str(validate=validate.OneOf(AGE_STAGES)),
        required=True,
        validate=validate.Length(min=1, max=5),
    )
    behaviour_issues = fields.List(
        fields.Str(validate=validate.OneOf(BEHAVIOUR_ISSUES)),
        validate=validate.Length(max=10),
    )
    service_type_primary = fields.Str(allow_none=True, validate=validate.OneOf(SERVICE_TYPES))
    service_type_secondary = fields.List(
        fields.Str(validate=validate.OneOf(SERVICE_TYPES)),
        validate=validate.Length(max=4),
    )

    class Meta:
        unknown = EXCLUDE


class AdminListingSchema(Schema):
    tier = fields.Enum(Tier, by_value=True)
    verified = fields.Bool()

    class Meta:
        unknown = EXCLUDE


class ClaimSchema(Schema):
    business_id = fields.Int(required=True)


class FeaturedJoinSchema(Schema):
    business_id = fields.Int(required=True)


class PromoteSchema(Schema):
    council_id = fields.Int(required=True)


class CancelSchema(Schema):
    reason = fields.Str(load_default="Cancelled by admin", validate=validate.Length(max=255))
