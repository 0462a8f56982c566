"""Record, replay and verify packet-level traces of simulated networks."""

__version__ = "0.1.0"