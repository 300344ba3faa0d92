"""
Demonstration of uri resolution and file access.

Shows uri classification, resolution against base directories,
local reads and materialization of online files.
"""

import asyncio
import sys
import tempfile
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from unifiles.config import load_config, get_provider
from unifiles.errors import UriResolutionError
from unifiles.kinds import UriKind
from unifiles.logger import get_logger, init_logging, set_level
from unifiles.provider import UniversalFileProvider

init_logging(level='INFO')
logger = get_logger(__name__)


def demo_classification(provider):
    """Classify a few uris and resolve them."""
    logger.info("=" * 60)
    logger.info("DEMO 1: Classification and resolution")
    logger.info("=" * 60)

    samples = [
        ("https://example.com/a/b.txt", UriKind.ALL, None),
        ("docs/readme.md", UriKind.LOCAL, "/srv/project"),
        ("../img/logo.png", UriKind.ALL, "https://example.com/site/"),
        ("/tmp/notes.txt", UriKind.ALL, None),
    ]

    for raw, allowed, base in samples:
        uri = provider.get_new_uri(raw, allowed, base)
        logger.info(f"{raw!r}: {uri.uri_kind}")
        try:
            absolute = uri.to_absolute_uri()
            logger.info(f"  -> {absolute.uri} ({absolute.uri_kind})")
        except UriResolutionError as e:
            logger.warning(f"  -> {type(e).__name__}: {e}")


async def demo_local_file(provider):
    """Read a local file through the provider."""
    logger.info("=" * 60)
    logger.info("DEMO 2: Local file")
    logger.info("=" * 60)

    with tempfile.TemporaryDirectory() as tmp_dir:
        path = Path(tmp_dir) / "hello.txt"
        path.write_text("Hello from unifiles", encoding="utf-8")

        file = provider.build_new_file(path.name, UriKind.LOCAL, tmp_dir)
        logger.info(f"Exists: {await file.exists()}")
        logger.info(f"Size: {await file.get_byte_size()} bytes")
        logger.info(f"Name: {await file.try_get_file_name()}")
        logger.info(f"Content: {await file.read_to_string()}")

        local = await provider.to_local_file(file)
        logger.info(f"Already local: {local is file}")


async def demo_online_file(provider, url):
    """Download an online file into the temp directory."""
    logger.info("=" * 60)
    logger.info(f"DEMO 3: Online file {url}")
    logger.info("=" * 60)

    file = provider.build_new_file(url, UriKind.ONLINE)
    if not await file.exists(use_cache_if_online=True):
        logger.warning("Online file not reachable, skipping")
        return

    local = await provider.to_local_file(file)
    logger.info(f"Saved to {local.file_uri.to_absolute_uri().uri}")


async def main():
    config_path = "unifiles.example.toml"
    if Path(config_path).exists():
        load_config(config_path)
        set_level('INFO')
        provider = get_provider()
    else:
        provider = UniversalFileProvider()

    logger.info(f"Handlers: {', '.join(provider.list_handlers())}")

    demo_classification(provider)
    await demo_local_file(provider)
    if len(sys.argv) > 1:
        await demo_online_file(provider, sys.argv[1])


if __name__ == "__main__":
    asyncio.run(main())
