"""FleetRef - customer and aircraft reference data imports."""

__version__ = "1.0.0"
