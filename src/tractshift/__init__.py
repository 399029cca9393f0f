__version__ = "0.1.0"

from .settings import configure_logging, set_api_key, get_api_key

__all__ = [
    "configure_logging",
    "set_api_key",
    "get_api_key",
    "load_population_shift",
    "load_income_series",
    "build_household_distribution",
]

import logging
logging.getLogger("tractshift").addHandler(logging.NullHandler())

def __getattr__(name: str):
    if name == "load_population_shift":
        from .app.shift import load_population_shift
        return load_population_shift
    if name == "load_income_series":
        from .app.income import load_income_series
        return load_income_series
    if name == "build_household_distribution":
        from .app.pums import build_household_distribution
        return build_household_distribution
    raise AttributeError(f"module 'tractshift' has no attribute {name}")

def __dir__():
    return sorted(list(globals().keys()) + __all__)
