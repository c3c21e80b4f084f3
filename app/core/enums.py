"""
Closed vocabularies shared by request validation and the database column types.
"""
from enum import Enum


class Category(str, Enum):
    men = "men"
    women = "women"
    children = "children"


class SubCategory(str, Enum):
    spa = "spa"
    cupping = "cupping"
    beauty_clinic = "beauty_clinic"
    mens_salon = "mens_salon"
    womens_salon = "womens_salon"
    home_services = "home_services"
    body_care = "body_care"
    children_salon = "children_salon"


class Governorate(str, Enum):
    capital = "capital"
    ahmadi = "ahmadi"
    farwaniya = "farwaniya"
    jahra = "jahra"
    mubarak_al_kabeer = "mubarak_al_kabeer"
    hawalli = "hawalli"


def enum_values(enum_cls: type[Enum]) -> list[str]:
    return [m.value for m in enum_cls]
