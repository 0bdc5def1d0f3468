from enum import Enum
from typing import List, Union

from core.errors import ValidationError


class BloodType(str, Enum):
    A_POS = "A+"
    A_NEG = "A-"
    B_POS = "B+"
    B_NEG = "B-"
    AB_POS = "AB+"
    AB_NEG = "AB-"
    O_POS = "O+"
    O_NEG = "O-"

    @classmethod
    def parse(cls, value: Union["BloodType", str, None]) -> "BloodType":
        if isinstance(value, cls):
            return value
        label = (value or "").strip().upper()
        if not label:
            raise ValidationError("Blood type is required")
        try:
            return cls(label)
        except ValueError:
            raise ValidationError(f"Unknown blood type: {value!r}")

    def __str__(self) -> str:
        return self.value


# Display order used by stock cards and the completion picker
ALL_BLOOD_TYPES: List[BloodType] = list(BloodType)
