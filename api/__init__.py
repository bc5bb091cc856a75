"""HTTP API for the contact enrichment CRM."""
