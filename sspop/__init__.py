"""Resource builders, admission checks, status logic and CSV generation for the SSP operator."""

__version__ = "0.13.0"