"""Write export files into an output directory."""

import re
from pathlib import Path

from loguru import logger

_UNSAFE_CHARS_RE = re.compile(r"[^\w\- .]+")


def safe_basename(name: str) -> str:
    """Turn a node name into something usable as a file name."""
    cleaned = _UNSAFE_CHARS_RE.sub("_", name).strip(" .")
    return cleaned or "untitled"


class FileWriter:
    """Write export files in a smart way.

    - Do not override files if contents are the same.
    - Refuse to write outside the output directory, or anything that is not
      a .json, .txt or .md file.
    """

    def __init__(self, outdir: str | Path, dry_run: bool = False) -> None:
        self.outdir = str(Path(outdir).resolve())
        self.dry_run = dry_run

        if not dry_run and not Path(self.outdir).is_dir():
            msg = f"Output directory {self.outdir!r} not found"
            raise ValueError(msg)

        logger.debug("Writer ready, outdir {!r}, dry_run {!r}", outdir, dry_run)
        # Absolute paths written (or that would be written) this session.
        self.files_made: list[str] = []
        self._unique_names: set[str] = set()
        self.num_same = 0
        self.num_changed = 0

    def is_possible_output(self, fname: str) -> bool:
        return fname.endswith((".json", ".txt", ".md"))

    def _resolve(self, fname_rel: str) -> str:
        fname = str((Path(self.outdir) / fname_rel).resolve())
        if not fname.startswith(self.outdir + "/"):
            msg = f"Path escapes outdir: {fname!r}"
            raise ValueError(msg)
        return fname

    def make_unique_name(self, base: str, *, suffix: str = "") -> str:
        """Generate a unique file name.

        Append numbers to "base" until (base + suffix) does not match any
        previous result of this function.
        """
        unique_str = ""
        unique_count = 0
        while True:
            fname = self._resolve(base + unique_str + suffix)
            if fname not in self._unique_names:
                break
            unique_count += 1
            unique_str = f"-{unique_count}"

        self._unique_names.add(fname)
        return base + unique_str + suffix

    def make_data_file(self, fname_rel: str, *, contents: str) -> str:
        """Write contents to a file relative to the output directory.

        Returns:
            Absolute path of the file.
        """
        if Path(fname_rel).is_absolute():
            msg = f"must be relative: {fname_rel!r}"
            raise ValueError(msg)
        fname = self._resolve(fname_rel)
        if not self.is_possible_output(fname):
            msg = f"Wanted to write {fname!r} but is_possible_output() returns False"
            raise ValueError(msg)

        self.files_made.append(fname)
        action = "create"
        try:
            with open(fname, encoding="utf-8") as f:
                if f.read() == contents:
                    self.num_same += 1
                    logger.debug("Unchanged: {!r}", fname)
                    return fname
            action = "update"
            self.num_changed += 1
        except (FileNotFoundError, UnicodeDecodeError):
            pass

        if self.dry_run:
            logger.info("dry-run: would {} {!r}", action, fname)
        else:
            logger.debug("Writing ({}) {!r}", action, fname)
            Path(fname).parent.mkdir(parents=True, exist_ok=True)
            with open(fname, "w", encoding="utf-8") as f:
                f.write(contents)
        return fname

    def summary(self) -> str:
        """One-line count of unchanged, changed and new files this session."""
        num_new = len(self.files_made) - self.num_same - self.num_changed
        prefix = "dry-run: " if self.dry_run else ""
        return f"{prefix}{self.num_same} unchanged, {self.num_changed} changed, {num_new} new"
