from enum import Enum


class ProductKind(str, Enum):
    SIMPLE = "simple"
    COMPUTED = "computed"
