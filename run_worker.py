#!/usr/bin/env python3
"""
Export client for SlideCraft

Asks a running SlideCraft server to export a carousel, then downloads the
resulting archive (and optionally unpacks it).

Usage:
    python run_worker.py http://localhost:8000 CAROUSEL_ID --user-id USER_ID

Or with custom settings:
    python run_worker.py http://localhost:8000 CAROUSEL_ID --user-id USER_ID --output ./exports --extract
"""

import argparse
import logging
import os
import sys
import zipfile
from pathlib import Path
from typing import Optional

import requests


# Setup logging with colors
class ColoredFormatter(logging.Formatter):
    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        color = self.COLORS.get(record.levelname, '')
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


logger = logging.getLogger("slidecraft.client")


def configure_logging(verbose: bool = False):
    handler = logging.StreamHandler()
    handler.setFormatter(ColoredFormatter(
        '%(asctime)s │ %(levelname)s │ %(message)s',
        datefmt='%H:%M:%S'
    ))
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, handlers=[handler])


class ExportClient:
    """Drives the export endpoint of a SlideCraft server."""

    def __init__(self, server_url: str, user_id: str, timeout: float = 600):
        self.server_url = server_url.rstrip('/')
        self.api_base = f"{self.server_url}/api"
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers["X-User-Id"] = user_id

    def check_server(self) -> bool:
        """Check if the server is reachable."""
        try:
            resp = self.session.get(f"{self.server_url}/health", timeout=10)
            resp.raise_for_status()
            logger.info(f"Server connected - version {resp.json().get('version', 'unknown')}")
            return True
        except requests.RequestException as e:
            logger.error(f"Cannot connect to server: {e}")
            return False

    def start_export(self, carousel_id: str) -> dict:
        """POST the export; blocks until the server reports ready or failed."""
        logger.info(f"Exporting carousel {carousel_id} (this can take a while)...")
        resp = self.session.post(f"{self.api_base}/export/{carousel_id}", timeout=self.timeout)
        try:
            data = resp.json()
        except ValueError:
            data = {"error": f"Unexpected response ({resp.status_code})"}
        if resp.status_code != 200 and "error" not in data:
            data["error"] = f"HTTP {resp.status_code}"
        return data

    def download(self, url: str, dest: Path) -> Path:
        dest.parent.mkdir(parents=True, exist_ok=True)
        with self.session.get(url, stream=True, timeout=self.timeout) as resp:
            resp.raise_for_status()
            with open(dest, 'wb') as f:
                for chunk in resp.iter_content(chunk_size=65536):
                    f.write(chunk)
        logger.info(f"Saved {dest} ({dest.stat().st_size / 1024:.1f} KB)")
        return dest

    def run(self, carousel_id: str, output_dir: Path, extract: bool = False) -> Optional[Path]:
        if not self.check_server():
            return None

        result = self.start_export(carousel_id)
        if result.get("error"):
            logger.error(f"Export failed: {result['error']}")
            return None

        logger.info(f"Export {result['exportId']} is {result['status']} "
                    f"({len(result.get('slideUrls', []))} slides)")
        archive = self.download(result["downloadUrl"], output_dir / f"carousel-{carousel_id}.zip")

        if extract:
            target = output_dir / f"carousel-{carousel_id}"
            with zipfile.ZipFile(archive) as zf:
                zf.extractall(target)
                logger.info(f"Extracted {len(zf.namelist())} files to {target}")
            return target
        return archive


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Export a SlideCraft carousel and download the archive"
    )
    parser.add_argument(
        "server",
        help="Server URL (e.g., http://localhost:8000)"
    )
    parser.add_argument(
        "carousel_id",
        help="Carousel to export"
    )
    parser.add_argument(
        "--user-id", "-u",
        default=os.environ.get("SLIDECRAFT_USER_ID"),
        help="User the carousel belongs to (default: $SLIDECRAFT_USER_ID)"
    )
    parser.add_argument(
        "--output", "-o",
        default="exports",
        help="Directory to save the archive into (default: ./exports)"
    )
    parser.add_argument(
        "--extract", "-x",
        action="store_true",
        help="Unpack the archive after downloading"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging"
    )

    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if not args.user_id:
        parser.error("--user-id is required (or set SLIDECRAFT_USER_ID)")

    client = ExportClient(server_url=args.server, user_id=args.user_id)
    result = client.run(args.carousel_id, Path(args.output), extract=args.extract)
    return 0 if result is not None else 1


if __name__ == "__main__":
    sys.exit(main())
