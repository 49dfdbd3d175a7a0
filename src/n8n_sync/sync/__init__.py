"""Reconciliation of local workflow files with a remote n8n instance."""
