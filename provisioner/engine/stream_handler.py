# Path: provisioner/engine/stream_handler.py
"""
Stream Handler

Memory-efficient streaming for large file downloads.
Writes directly to disk without loading entire file into memory.

Architecture:
- Chunk-based streaming
- Optional rich progress bar
- Resume capability support
- Async I/O for efficiency
"""

from pathlib import Path
from typing import Optional, AsyncIterator

import aiofiles
from rich.progress import (
    Progress,
    BarColumn,
    DownloadColumn,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from provisioner.core.logger import get_logger, console
from provisioner.constants import DEFAULT_CHUNK_SIZE, LOG_PROCESS

logger = get_logger(__name__, 'engine')

PROGRESS_LOG_INTERVAL = 100


def create_progress() -> Progress:
    """Progress bar used for visible (non-silent) downloads."""
    return Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        TimeRemainingColumn(),
        console=console,
        transient=True,
    )


class StreamHandler:
    """
    Handles streaming download to disk.

    Example:
        handler = StreamHandler(chunk_size=65536)
        written = await handler.stream_to_file(
            response.content.iter_chunked(65536),
            Path('builds/gcc-9.3.0.tar.xz'),
            total_size=content_length,
        )
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Initialize stream handler.

        Args:
            chunk_size: Size of chunks to read/write (bytes)
        """
        self.chunk_size = chunk_size
        self.bytes_written = 0
        self.chunks_written = 0

    async def stream_to_file(
        self,
        response_stream: AsyncIterator[bytes],
        output_path: Path,
        total_size: Optional[int] = None,
        resume_from: int = 0,
        show_progress: bool = False
    ) -> int:
        """
        Stream response to file.

        Args:
            response_stream: Async iterator of byte chunks
            output_path: Path where file will be written
            total_size: Total expected size including resumed bytes
            resume_from: Byte offset to resume from (appends when > 0)
            show_progress: Render a progress bar on the console

        Returns:
            Total bytes on disk
        """
        logger.debug(f"{LOG_PROCESS} Streaming to: {output_path.name}")

        mode = 'ab' if resume_from > 0 else 'wb'

        self.bytes_written = resume_from
        self.chunks_written = 0

        progress = create_progress() if show_progress else None
        task_id = None

        try:
            if progress is not None:
                progress.start()
                task_id = progress.add_task(
                    output_path.name,
                    total=total_size,
                    completed=resume_from,
                )

            async with aiofiles.open(output_path, mode) as f:
                async for chunk in response_stream:
                    if not chunk:
                        continue

                    await f.write(chunk)
                    self.bytes_written += len(chunk)
                    self.chunks_written += 1

                    if progress is not None:
                        progress.update(task_id, advance=len(chunk))

                    if self.chunks_written % PROGRESS_LOG_INTERVAL == 0:
                        if total_size:
                            percent = (self.bytes_written / total_size) * 100
                            logger.debug(
                                f"{LOG_PROCESS} Progress: {percent:.1f}% "
                                f"({self.bytes_written}/{total_size} bytes)"
                            )
                        else:
                            logger.debug(
                                f"{LOG_PROCESS} Downloaded: {self.bytes_written} bytes"
                            )

        except Exception as e:
            logger.error(f"Streaming error: {e}")
            raise

        finally:
            if progress is not None:
                progress.stop()

        logger.debug(
            f"{LOG_PROCESS} Stream complete: {self.bytes_written} bytes "
            f"in {self.chunks_written} chunks"
        )

        return self.bytes_written


__all__ = ['StreamHandler', 'create_progress']
