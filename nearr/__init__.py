"""NEARR cohort backend - cluster cohorts that exchange contact cards."""

__version__ = "0.1.0"
