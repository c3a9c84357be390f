"""
Base parser module for pm2stream.

This module provides a base class for parsers with common file handling.
"""

from pathlib import Path
from typing import Any, Dict, Optional
from abc import ABC, abstractmethod
import logging


class BaseParser(ABC):
    """
    Abstract base class for all parsers in pm2stream.
    """
    
    def __init__(self, config=None):
        """
        Initialize the base parser.
        
        Args:
            config: Application configuration (optional)
        """
        self.config = config
        self.logger = logging.getLogger(self.__class__.__name__)
    
    @abstractmethod
    def parse(self, source: str) -> Dict[str, Any]:
        """
        Parse the source and return structured data.
        
        Args:
            source: Source to parse (file path)
            
        Returns:
            Dictionary with parsed data
        """
        pass
    
    def validate_source(self, source: str) -> bool:
        """
        Check that a source file exists and is readable.
        
        Args:
            source: Path to the source file
            
        Returns:
            True if the file can be parsed, False otherwise
        """
        path = Path(source)
        if not path.exists():
            self.logger.error(f"Source file does not exist: {source}")
            return False
        if not path.is_file():
            self.logger.error(f"Source is not a file: {source}")
            return False
        return True
    
    def read_file(self, source: str) -> Optional[str]:
        """
        Read a source file as text.
        
        Args:
            source: Path to the source file
            
        Returns:
            File content, or None if the file could not be read
        """
        try:
            with open(source, 'r', encoding='utf-8', errors='replace') as f:
                return f.read()
        except OSError as e:
            self.logger.error(f"Error reading file {source}: {str(e)}")
            return None
