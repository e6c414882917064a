from digitlab.data.digits import digits_from_prices, last_digit, load_digits, validate_digits

__all__ = ["last_digit", "digits_from_prices", "validate_digits", "load_digits"]
