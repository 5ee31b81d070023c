"""evohome_listener - a RAMSES-II zone listener & requester."""

__version__ = "0.1.0"
VERSION = __version__
