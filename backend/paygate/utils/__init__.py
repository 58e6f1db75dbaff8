from paygate.utils.hashing import generate_hash
from paygate.utils.validators import validate_amount, validate_currency

__all__ = ["generate_hash", "validate_amount", "validate_currency"]
