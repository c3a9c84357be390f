"""CLI command implementations for pm2stream."""
