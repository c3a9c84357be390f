"""Parsers module for pm2stream."""

from .log_parser import PM2LogParser, split_chunk

__all__ = ['PM2LogParser', 'split_chunk']
