from __future__ import annotations

import argparse
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .car import encode_car
from .cid import CID, Block, ContentType, cid_for_payload
from .dag_pb import PBLink, encode_directory
from .errors import MalformedInputError
from .logging_config import setup_logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileEntry:
    name: str
    content: bytes


@dataclass
class FileNode:
    name: str
    cid: CID
    size: int


@dataclass
class DirectoryNode:
    name: str
    entries: Dict[str, Union["DirectoryNode", FileNode]] = field(default_factory=dict)
    cid: Optional[CID] = None
    size: int = 0


class DirectoryTree:
    """Builds a UnixFS directory DAG out of flat ``(path, content)`` pairs.

    File blocks are queued as soon as a file is added; directory blocks are
    queued by :meth:`finalize`, children before parents, ending with the root.
    """

    def __init__(self, files: Iterable[Union[FileEntry, Tuple[str, bytes]]] = ()) -> None:
        self.root_dir = DirectoryNode(name="")
        self.blocks: List[Block] = []
        self._root_cid: Optional[CID] = None
        for entry in files:
            if isinstance(entry, FileEntry):
                self.add_file(entry.name, entry.content)
            else:
                name, content = entry
                self.add_file(name, content)

    def add_file(self, path: str, content: bytes) -> FileNode:
        if self._root_cid is not None:
            raise RuntimeError("Cannot add files to a finalized tree")
        segments = [segment for segment in path.split("/") if segment]
        if not segments:
            raise MalformedInputError(f"Empty file name in path {path!r}")
        directory = self.root_dir
        for dir_name in segments[:-1]:
            child = directory.entries.get(dir_name)
            if child is None:
                child = DirectoryNode(name=dir_name)
                directory.entries[dir_name] = child
            elif isinstance(child, FileNode):
                raise MalformedInputError(f"{path!r} descends into file {dir_name!r}")
            directory = child

        file_name = segments[-1]
        if file_name in directory.entries:
            raise MalformedInputError(f"Duplicate entry {file_name!r} in path {path!r}")
        content = bytes(content)
        block = Block(cid=cid_for_payload(content, ContentType.RAW), payload=content)
        node = FileNode(name=file_name, cid=block.cid, size=len(content))
        directory.entries[file_name] = node
        self.blocks.append(block)
        return node

    def _resolve(self, directory: DirectoryNode) -> CID:
        links = []
        # children in link order so the block list does not depend on input order
        for name in sorted(directory.entries, key=lambda name: name.encode("utf-8")):
            entry = directory.entries[name]
            if isinstance(entry, DirectoryNode) and entry.cid is None:
                self._resolve(entry)
            links.append(PBLink(name=entry.name, cid=entry.cid, size=entry.size))
        node = encode_directory(links)
        directory.cid = cid_for_payload(node, ContentType.DIRECTORY)
        # Tsize of a directory link is the cumulative DAG size (UnixFS convention)
        directory.size = len(node) + sum(link.size for link in links)
        self.blocks.append(Block(cid=directory.cid, payload=node))
        logger.debug("Directory %r resolved to %s", directory.name, directory.cid)
        return directory.cid

    def finalize(self) -> CID:
        if self._root_cid is None:
            self._root_cid = self._resolve(self.root_dir)
        return self._root_cid

    @property
    def root(self) -> CID:
        return self.finalize()


def build_directory_tree(
    files: Iterable[Union[FileEntry, Tuple[str, bytes]]],
) -> Tuple[CID, List[Block]]:
    tree = DirectoryTree(files)
    root_cid = tree.finalize()
    return root_cid, list(tree.blocks)


def read_files_recursively(directory: Path) -> List[FileEntry]:
    """Load every regular file below ``directory`` with a POSIX relative name."""
    if not directory.exists() or not directory.is_dir():
        raise NotADirectoryError(directory)
    files: List[FileEntry] = []
    for candidate in sorted(directory.rglob("*")):
        if candidate.is_file():
            files.append(
                FileEntry(
                    name=candidate.relative_to(directory).as_posix(),
                    content=candidate.read_bytes(),
                )
            )
    return files


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Compute the UnixFS root CID of a file or directory",
    )
    parser.add_argument("path", type=Path, help="File or directory to hash")
    parser.add_argument(
        "--car-out",
        type=Path,
        default=None,
        help="Write every block of the tree into this CAR archive",
    )
    parser.add_argument(
        "--manifest-out",
        type=Path,
        default=None,
        help="Write a JSON manifest of block CIDs and sizes",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Logging level (default: INFO)",
    )
    return parser.parse_args()


def _run_cli() -> None:
    args = _parse_args()
    log = setup_logging("ipfs_blocks", args.log_level)
    target: Path = args.path
    if target.is_dir():
        files = read_files_recursively(target)
    elif target.is_file():
        files = [FileEntry(name=target.name, content=target.read_bytes())]
    else:
        raise FileNotFoundError(target)

    root_cid, blocks = build_directory_tree(files)
    log.info("Built %d blocks from %d files", len(blocks), len(files))
    if args.car_out:
        args.car_out.write_bytes(encode_car([root_cid], blocks))
        print(f"CAR written to {args.car_out}")
    if args.manifest_out:
        manifest = {
            "root": str(root_cid),
            "files": [{"name": entry.name, "size": len(entry.content)} for entry in files],
            "blocks": [{"cid": str(block.cid), "size": block.size} for block in blocks],
        }
        args.manifest_out.write_text(json.dumps(manifest, indent=2))
        print(f"Manifest written to {args.manifest_out}")
    print(f"Root CID: {root_cid}")


if __name__ == "__main__":
    _run_cli()
