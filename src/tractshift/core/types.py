"""
TractShift - Shared Domain Types.
"""
from typing import Literal, Union

# Represents a State Identifier input
# Can be:
# - FIPS: 1, "1" or "01"
# - Abbreviation: "AL"
# - Name: "Alabama"
StateInput = Union[int, str]

# Represents a County Identifier input: FIPS ("117", 117) or name ("Shelby")
CountyInput = Union[int, str]

# Common Literals
InterpolationMethod = Literal["area", "population"]
FallbackPolicy = Literal["area", "zero"]
MissingPolicy = Literal["raise", "null"]
