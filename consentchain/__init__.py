"""consentchain: resilient submission of policy and consent records to the metagraph."""

__version__ = "0.1.0"
