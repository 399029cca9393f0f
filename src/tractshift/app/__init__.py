"""
TractShift - Application Layer.

Modules:
- shift: Population shift between two ACS vintages on later tract boundaries.
- income: Multi-year county income series with margins of error.
- pums: Household distribution tables from PUMS microdata.
"""

# Explicitly empty to prevent eager loading.
# Users should use: from tractshift.app.shift import load_population_shift
