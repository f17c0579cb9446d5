"""Failure kinds of a fetch cycle."""


class AirQualityError(Exception):
    """Base class for every failure raised by this package"""


class ConfigurationError(AirQualityError):
    """A required API key or setting is missing"""


class LocationUnavailableError(AirQualityError):
    """The location provider could not produce a fix"""


class PermissionDeniedError(AirQualityError):
    """Access to the location was refused; ends the session"""


class StationNotFoundError(AirQualityError):
    """No monitoring station could be resolved for the location"""


class MeasurementUnavailableError(AirQualityError):
    """The station has no usable measurement record"""


class TransportFailureError(AirQualityError):
    """The provider could not be reached"""
