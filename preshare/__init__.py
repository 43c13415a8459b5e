"""preshare: privacy-preserving preparation of agent session transcripts for donation."""

__version__ = "0.1.0"
