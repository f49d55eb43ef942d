"""kagentctl - lifecycle orchestrator for the SRE kagent Helm charts."""

__version__ = "0.1.0"
