from ILIOS.payment.phone import format_phone_number, validate_mtn_phone_number


class TestFormatPhoneNumber:
    def test_drops_trunk_zero_and_adds_country_code(self):
        assert format_phone_number("0677123456") == "237677123456"

    def test_adds_country_code_to_national_number(self):
        assert format_phone_number("677123456") == "237677123456"

    def test_keeps_international_number(self):
        assert format_phone_number("+237 677-12-34-56") == "237677123456"


class TestValidateMtnPhoneNumber:
    def test_valid_prefixes(self):
        for number in ("677123456", "655123456", "681234567", "237677123456"):
            assert validate_mtn_phone_number(number).is_valid, number

    def test_short_international_number_still_checks_prefix(self):
        assert validate_mtn_phone_number("23767712345").is_valid

    def test_orange_prefix_rejected(self):
        result = validate_mtn_phone_number("699123456")
        assert not result.is_valid
        assert result.error == "Not an MTN Cameroon number"

    def test_too_short(self):
        result = validate_mtn_phone_number("67712")
        assert not result.is_valid
        assert result.error == "Number too short"

    def test_trunk_zero_is_ignored_for_prefix(self):
        assert validate_mtn_phone_number("0677123456").is_valid
