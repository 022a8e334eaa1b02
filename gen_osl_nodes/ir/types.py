from enum import Enum
from typing import Optional


class DataType(Enum):
    # Scalars
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"

    # Aggregates
    COLOR3 = "color3"
    COLOR4 = "color4"
    VECTOR2 = "vector2"
    VECTOR3 = "vector3"
    VECTOR4 = "vector4"
    MATRIX33 = "matrix33"
    MATRIX44 = "matrix44"

    # Strings
    STRING = "string"
    FILENAME = "filename"

    # Arrays
    INTEGERARRAY = "integerarray"
    FLOATARRAY = "floatarray"

    # Closures and shaders. These have no literal value, only connections.
    BSDF = "BSDF"
    EDF = "EDF"
    VDF = "VDF"
    SURFACESHADER = "surfaceshader"
    VOLUMESHADER = "volumeshader"
    DISPLACEMENTSHADER = "displacementshader"
    LIGHTSHADER = "lightshader"
    MATERIAL = "material"

    @classmethod
    def lookup(cls, name: str) -> Optional['DataType']:
        """Returns the DataType for a MaterialX type name, or None for custom types."""
        try:
            return cls(name)
        except ValueError:
            return None

    def is_closure(self):
        return self in {
            DataType.BSDF, DataType.EDF, DataType.VDF,
            DataType.SURFACESHADER, DataType.VOLUMESHADER,
            DataType.DISPLACEMENTSHADER, DataType.LIGHTSHADER,
            DataType.MATERIAL,
        }

    def is_string(self):
        return self in {DataType.STRING, DataType.FILENAME}

    def is_array(self):
        return self in {DataType.INTEGERARRAY, DataType.FLOATARRAY}

    def is_integer(self):
        """Returns True if the components are integers."""
        return self in {DataType.INTEGER, DataType.INTEGERARRAY}

    def component_count(self):
        if self == DataType.VECTOR2: return 2
        if self in {DataType.COLOR3, DataType.VECTOR3}: return 3
        if self in {DataType.COLOR4, DataType.VECTOR4}: return 4
        if self == DataType.MATRIX33: return 9
        if self == DataType.MATRIX44: return 16
        return 1

    def __str__(self):
        return self.value
