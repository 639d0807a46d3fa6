"""Export HarperDB logs and system metrics to Hydrolix."""

__version__ = "0.1.0"
