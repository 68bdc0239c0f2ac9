"""oscdgram - UDP transport plugin for OSC hosts."""

__version__ = "0.1.0"
