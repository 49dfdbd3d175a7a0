"""n8n-sync - Keep a directory of n8n workflow files in step with an n8n instance."""

__version__ = "0.1.0"
