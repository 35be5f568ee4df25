"""Hidden-service URL scheduler: decides which discovered URLs get crawled."""

__version__ = "0.4.0"
