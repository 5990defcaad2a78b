"""Exceptions raised to callers of the pipeline"""


class MealScanError(Exception):
    """Base class for mealscan errors"""


class InvalidImageError(MealScanError):
    """The supplied bytes could not be decoded into an image"""


class GuessCancelledError(MealScanError):
    """The caller cancelled a running guess"""
