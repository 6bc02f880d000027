"""Command groups registered on the Spirit Cat CLI."""
