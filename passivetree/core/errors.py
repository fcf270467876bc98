"""
Fatal data errors.

Gameplay rule violations are never exceptions; they come back as False.
"""


class DataError(ValueError):
    """Tree or save data is malformed or inconsistent."""
