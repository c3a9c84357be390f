"""
Process attachment module for pm2stream.

This module spawns the command that streams a PM2 process's logs and exposes
its stdout and stderr as asyncio stream readers.
"""

import asyncio
import logging
from typing import List, Optional

from .exceptions import AttachmentError


class ProcessAttachment:
    """
    A live connection to the output of a log streaming subprocess.
    """
    
    def __init__(self, process: asyncio.subprocess.Process, command: List[str]):
        """
        Initialize the attachment.
        
        Args:
            process: Spawned subprocess with piped stdout and stderr
            command: Command line the process was started with
        """
        self.process = process
        self.command = command
        self.logger = logging.getLogger(__name__)
    
    @property
    def pid(self) -> Optional[int]:
        return self.process.pid
    
    @property
    def stdout(self) -> asyncio.StreamReader:
        return self.process.stdout
    
    @property
    def stderr(self) -> asyncio.StreamReader:
        return self.process.stderr
    
    async def wait(self) -> int:
        """Wait for the process to exit and return its exit code."""
        return await self.process.wait()
    
    def kill(self):
        """Kill the process if it is still running."""
        if self.process.returncode is not None:
            return
        try:
            self.process.kill()
            self.logger.debug(f"Killed log process (PID: {self.pid})")
        except ProcessLookupError:
            pass # Already exited


class PM2ProcessSource:
    """
    Attachment source for ``pm2 logs <process> --raw --timestamp``.
    """
    
    def __init__(self, config):
        """
        Initialize the process source.
        
        Args:
            config: Application configuration
        """
        self.config = config
        self.logger = logging.getLogger(__name__)
    
    @property
    def process_name(self) -> str:
        return self.config.streamer.process_name
    
    @property
    def command(self) -> List[str]:
        return self.config.streamer.build_command()
    
    async def open(self) -> ProcessAttachment:
        """
        Spawn the log streaming command.
        
        Returns:
            Attachment to the spawned process
            
        Raises:
            AttachmentError: If the command cannot be started
        """
        command = self.command
        self.logger.debug(f"Spawning log process: {' '.join(command)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise AttachmentError(f"Failed to start {command[0]}: {e}") from e
        
        self.logger.info(f"Log process started with PID: {process.pid} for {self.process_name}")
        return ProcessAttachment(process, command)
