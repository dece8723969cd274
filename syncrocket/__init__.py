"""Client and player for the Rocket sync tracker: tracks, interpolation, a TCP client, a file codec and a high-level interface."""

__version__ = "0.14.0"