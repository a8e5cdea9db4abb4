"""Detectable entity types for the deidentify tool.

A closed set of variants; lookups return None on a miss instead of raising,
so callers decide how an unknown name is reported.
"""

from enum import Enum
from typing import Iterable, Optional


class EntityType(str, Enum):
    """Skyflow Detect entity type names (wire values)."""

    ACCOUNT_NUMBER = "account_number"
    AGE = "age"
    ALL = "all"
    BANK_ACCOUNT = "bank_account"
    BLOOD_TYPE = "blood_type"
    CONDITION = "condition"
    CORPORATE_ACTION = "corporate_action"
    CREDIT_CARD = "credit_card"
    CREDIT_CARD_EXPIRATION = "credit_card_expiration"
    CVV = "cvv"
    DATE = "date"
    DATE_INTERVAL = "date_interval"
    DAY = "day"
    DOB = "dob"
    DOSE = "dose"
    DRIVER_LICENSE = "driver_license"
    DRUG = "drug"
    DURATION = "duration"
    EFFECT = "effect"
    EMAIL_ADDRESS = "email_address"
    EVENT = "event"
    FILENAME = "filename"
    FINANCIAL_METRIC = "financial_metric"
    GENDER = "gender"
    HEALTHCARE_NUMBER = "healthcare_number"
    INJURY = "injury"
    IP_ADDRESS = "ip_address"
    LANGUAGE = "language"
    LOCATION = "location"
    LOCATION_ADDRESS = "location_address"
    LOCATION_ADDRESS_STREET = "location_address_street"
    LOCATION_CITY = "location_city"
    LOCATION_COORDINATE = "location_coordinate"
    LOCATION_COUNTRY = "location_country"
    LOCATION_STATE = "location_state"
    LOCATION_ZIP = "location_zip"
    MARITAL_STATUS = "marital_status"
    MEDICAL_CODE = "medical_code"
    MEDICAL_PROCESS = "medical_process"
    MONEY = "money"
    MONTH = "month"
    NAME = "name"
    NAME_FAMILY = "name_family"
    NAME_GIVEN = "name_given"
    NAME_MEDICAL_PROFESSIONAL = "name_medical_professional"
    NUMERICAL_PII = "numerical_pii"
    OCCUPATION = "occupation"
    ORGANIZATION = "organization"
    ORGANIZATION_ID = "organization_id"
    ORGANIZATION_MEDICAL_FACILITY = "organization_medical_facility"
    ORIGIN = "origin"
    PASSPORT_NUMBER = "passport_number"
    PASSWORD = "password"
    PHONE_NUMBER = "phone_number"
    PHYSICAL_ATTRIBUTE = "physical_attribute"
    POLITICAL_AFFILIATION = "political_affiliation"
    PRODUCT = "product"
    PROJECT = "project"
    RELIGION = "religion"
    ROUTING_NUMBER = "routing_number"
    SEXUALITY = "sexuality"
    SSN = "ssn"
    STATISTICS = "statistics"
    TIME = "time"
    TREND = "trend"
    URL = "url"
    USERNAME = "username"
    VEHICLE_ID = "vehicle_id"
    ZODIAC_SIGN = "zodiac_sign"


_BY_NAME: dict[str, EntityType] = {entity.value: entity for entity in EntityType}


def lookup_entity(name: str) -> Optional[EntityType]:
    """Return the EntityType for a wire name, or None if unknown."""
    return _BY_NAME.get(name)


def partition_entities(names: Iterable[str]) -> tuple[list[EntityType], list[str]]:
    """Split names into (known entity types, unknown names), preserving order."""
    known: list[EntityType] = []
    unknown: list[str] = []
    for name in names:
        entity = lookup_entity(name)
        if entity is None:
            unknown.append(name)
        else:
            known.append(entity)
    return known, unknown
