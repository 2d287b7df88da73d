"""tremorsense: motion stability tracking from accelerometer and gyroscope sessions."""

__version__ = "0.1.0"
