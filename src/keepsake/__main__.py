"""Entry point: python -m keepsake <command> <file> [key]

- keys <file>:        List the keys stored in a save file
- show <file> [key]:  Print records (all, or one) as JSON lines
- remove <file> <key>: Remove a record and commit the file

Compression and encryption settings come from keepsake.toml / environment.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from keepsake.config import KeepsakeConfig, load_config
from keepsake.store import RecordStore

logger = logging.getLogger("keepsake")


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _open(config: KeepsakeConfig, path: str) -> RecordStore:
    storage = config.storage
    return RecordStore.open_path(
        Path(path),
        compression=storage.compression,
        compresslevel=storage.compress_level,
        password=storage.password or None,
    )


def _usage() -> None:
    print("Usage: python -m keepsake [keys|show|remove] <file> [key]")
    print("  keys <file>          List stored keys")
    print("  show <file> [key]    Print records as JSON lines")
    print("  remove <file> <key>  Remove a record and commit")


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) < 2:
        _usage()
        return 1

    cmd, path, rest = args[0], args[1], args[2:]
    config = load_config()
    _setup_logging(config.log_level)

    if cmd == "keys":
        for key in _open(config, path).keys():
            print(key)
        return 0

    if cmd == "show":
        store = _open(config, path)
        if rest:
            record = store.get(rest[0])
            if record is None:
                print(f"No record for key: {rest[0]}", file=sys.stderr)
                return 1
            print(record.to_text())
            return 0
        for record in store:
            print(record.to_text())
        return 0

    if cmd == "remove" and rest:
        store = _open(config, path)
        if not store.remove(rest[0]):
            print(f"No record for key: {rest[0]}", file=sys.stderr)
            return 1
        store.commit()
        logger.info("Removed %s from %s", rest[0], path)
        return 0

    _usage()
    return 1


if __name__ == "__main__":
    sys.exit(main())
