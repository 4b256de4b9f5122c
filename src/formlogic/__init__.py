"""formlogic — conditional logic engine for form builders."""

__version__ = "0.4.0"
