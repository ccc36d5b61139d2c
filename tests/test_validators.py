from barbershop.shared.validators import normalize_whatsapp_phone


def test_national_number_gets_country_code():
    assert normalize_whatsapp_phone("(11) 91234-5678") == "5511912345678"


def test_landline_gets_country_code():
    assert normalize_whatsapp_phone("11 3456-7890") == "551134567890"


def test_number_with_country_code_is_kept():
    assert normalize_whatsapp_phone("+55 11 91234-5678") == "5511912345678"
    assert normalize_whatsapp_phone("5511912345678") == "5511912345678"


def test_empty_values():
    assert normalize_whatsapp_phone(None) is None
    assert normalize_whatsapp_phone("") is None
    assert normalize_whatsapp_phone("---") is None


def test_custom_country_code():
    assert normalize_whatsapp_phone("2025550123", country_code="1") == "12025550123"
