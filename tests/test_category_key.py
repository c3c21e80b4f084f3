from app.core.enums import Category, SubCategory
from app.services.category_key import category_key, listing_category_key


def test_english_label():
    assert category_key("Beauty Clinic") == "beauty_clinic"
    assert category_key("beauty_clinic") == "beauty_clinic"


def test_same_input_same_key():
    assert category_key("Spa & Massage") == category_key("Spa & Massage")


def test_hamza_variants_match_plain_alef():
    assert category_key("أطفال") == category_key("اطفال")
    assert category_key("إسبا") == category_key("اسبا")


def test_taa_marbuta_matches_haa():
    assert category_key("عيادة") == category_key("عياده")


def test_sub_category_preferred_over_category():
    assert listing_category_key(SubCategory.mens_salon, Category.men) == "mens_salon"
    assert listing_category_key(None, Category.women) == "women"
    assert listing_category_key("", "children") == "children"
