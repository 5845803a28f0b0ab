"""
Local staging buffers for uploads.

S3-style puts need the content length up front, but callers hand us streams
of unknown length. The bytes are spooled to a temporary file first so the
length can be measured, then uploaded from that file.
"""

import logging
import os
import tempfile
from contextlib import contextmanager
from typing import BinaryIO, Generator, Optional

logger = logging.getLogger(__name__)

STAGING_SUFFIX = ".bsstage"


@contextmanager
def staging_file(
    prefix: str = "",
    directory: Optional[str] = None,
) -> Generator[BinaryIO, None, None]:
    """
    Provide a scratch file that is deleted on exit, whatever happens.
    
    The file is opened read/write in binary mode. Callers write into it,
    seek back and read it out again. The path is scratch.name; a caller may
    rename the file into place, which leaves nothing to clean up.
    
    Usage:
        with staging_file(prefix=bitstream.internal_id) as scratch:
            shutil.copyfileobj(stream, scratch)
            length = scratch.tell()
            scratch.seek(0)
            client.put_blob(container, key, scratch, length)
    """
    scratch = tempfile.NamedTemporaryFile(
        prefix=prefix,
        suffix=STAGING_SUFFIX,
        dir=directory,
        delete=False,
    )
    
    try:
        with scratch:
            yield scratch
    finally:
        # may already be gone if the caller renamed it into place
        try:
            os.unlink(scratch.name)
        except FileNotFoundError:
            pass
        logger.debug("Released staging file", extra={"path": scratch.name})
