"""
Physical constants used by the derivation pipeline.
"""

A_GRAVITY = 9.80665      # Standard acceleration due to gravity (m/s^2)
SL_PRESSURE = 101325.0   # Sea level pressure (Pa)
LAPSE_RATE = 0.0065      # Temperature lapse rate (K/m)
SL_TEMP = 288.15         # Sea level temperature (K)
MM_AIR = 0.0289644       # Molar mass of dry air (kg/mol)
GAS_CONST = 8.31447      # Universal gas constant (J/mol/K)

EARTH_RADIUS_M = 6371008.8  # Mean Earth radius (meters)

REGRESSION_HALF_WINDOW = 4  # Samples on each side of the regression centre
