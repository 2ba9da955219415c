#!/usr/bin/env python3
"""listtools: build and optimize package listfiles.

Tasks:
  generate  Walk a directory and write `<output>/(listfile)` with every file's
            relative path, using `\\` as the separator.
  optimize  Learn the casing of every path term from a directory of raw package
            listfiles, optionally review low-confidence terms by hand, then
            rewrite each package's list with the learned casing and store it in
            a per-package container (deduplicated by package hash).

Usage:
  python scripts/listtools.py -t optimize -i D:\\listfiles -o D:\\optimized [-d dictionary.dic] [-f compressed]
  python scripts/listtools.py -t generate -i D:\\extracted -o D:\\out

Exit codes: 0 success, 1 no input, 2 task error, 3 dictionary error, 4 no output.
"""
from __future__ import annotations

import argparse
import logging
import math
import sys
from pathlib import Path
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from listfile import (
    ListfileDictionary,
    ListfileFormatError,
    OptimizedList,
    OptimizedListContainer,
    RESOLVED_SCORE,
    hash_hex,
    package_hash,
)
from listfile.curation import CurationSession
from listfile.tokens import PATH_SEPARATOR, split_path
from scripts.lib.console import Console
from scripts.lib.packages import LISTFILE_NAME, PackageReadError, PackageSource, discover_packages
from scripts.lib.settings import OUTPUT_FORMATS, Settings, SettingsError, load_settings

_log = logging.getLogger("listtools")

EXIT_SUCCESS = 0
EXIT_NO_INPUT = 1
EXIT_TASK_ERROR = 2
EXIT_NO_DICTIONARY = 3
EXIT_NO_OUTPUT = 4

TASKS = ("generate", "optimize")


class TaskError(Exception):
    def __init__(self, message: str, exit_code: int = EXIT_TASK_ERROR) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class PackageSnapshot(NamedTuple):
    """One package version: its name, the hash of its index and its raw path list."""
    name: str
    package_hash: bytes
    paths: List[str]


# ── setup ────────────────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="listtools", description="Generate and optimize package listfiles.")
    ap.add_argument("-i", "--input", required=True, help="Input directory used for processing")
    ap.add_argument("-o", "--output", required=True, help="Output directory used for processing")
    ap.add_argument("-d", "--dictionary", help="Dictionary file (default: from settings or local app data)")
    ap.add_argument("-t", "--task-type", type=str.lower, choices=TASKS, default="generate",
                    help="Task to perform: generate or optimize (case-insensitive)")
    ap.add_argument("-f", "--format", type=str.lower, choices=OUTPUT_FORMATS, default=None,
                    help="Output format of optimized lists: flatfile or compressed")
    ap.add_argument("--config", help="Settings YAML (default: LISTTOOLS_CONFIG or config/listtools.yaml)")
    ap.add_argument("--no-fix", action="store_true", help="Skip the interactive review of low-score terms")
    ap.add_argument("--clear", action="store_true", help="Clear the terminal between review screens")
    ap.add_argument("-v", "--verbose", action="store_true", help="Print all status messages")
    ap.add_argument("-q", "--quiet", action="store_true", help="Only log errors (overrides the log_level setting)")
    return ap


def log_level(settings: Settings, verbose: bool = False, quiet: bool = False) -> int:
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.ERROR
    return getattr(logging, settings.log_level, logging.WARNING)


def configure_logging(settings: Settings, verbose: bool, quiet: bool = False) -> None:
    logging.basicConfig(level=log_level(settings, verbose, quiet), format="%(levelname)s %(name)s: %(message)s")


def sanity_checks(input_dir: Path, output: Optional[str], dictionary_path: Path, explicit_dictionary: bool) -> Path:
    """Validate paths before any work is done. Returns the output directory."""
    if not input_dir.is_dir():
        raise TaskError("The input directory did not exist.", EXIT_NO_INPUT)
    if not any(input_dir.iterdir()):
        raise TaskError("The input directory did not contain any files.", EXIT_NO_INPUT)
    if not output:
        raise TaskError("The output directory must not be empty.", EXIT_NO_OUTPUT)
    if explicit_dictionary and not dictionary_path.is_file():
        raise TaskError("The selected dictionary did not exist.", EXIT_NO_DICTIONARY)
    if dictionary_path.suffix != f".{ListfileDictionary.EXTENSION}":
        raise TaskError("The selected dictionary did not end with a valid extension.", EXIT_NO_DICTIONARY)
    out_dir = Path(output)
    try:
        dictionary_path.parent.mkdir(parents=True, exist_ok=True)
        out_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise TaskError(f"Could not create output directories: {e}", EXIT_NO_OUTPUT) from e
    return out_dir


# ── dictionary ───────────────────────────────────────────────────────────────


def load_dictionary(path: Path, console: Console) -> ListfileDictionary:
    if not path.is_file():
        console.log("Creating new dictionary...")
        return ListfileDictionary()
    console.log("Loading dictionary...")
    try:
        return ListfileDictionary.deserialize(path.read_bytes())
    except (OSError, ListfileFormatError) as e:
        raise TaskError(f"Failed to load dictionary {path}: {e}", EXIT_NO_DICTIONARY) from e


def save_dictionary(dictionary: ListfileDictionary, path: Path) -> None:
    try:
        path.write_bytes(dictionary.serialize())
    except OSError as e:
        raise TaskError(f"Failed to write dictionary {path}: {e}") from e
    _log.info("saved dictionary (%d entries) to %s", len(dictionary), path)


def populate_dictionary(dictionary: ListfileDictionary, paths: Sequence[str], settings: Settings) -> int:
    """Feed every component of every path into the dictionary. Returns words updated."""
    updated = 0
    for path in paths:
        parts = split_path(path)
        for term in parts:
            # Doubled or trailing separators leave empty components
            if term and dictionary.update_term_entry(term):
                updated += 1
        # File names under trusted prefixes (md5-named textures etc.) skip review
        if parts and settings.is_trusted(path):
            if dictionary.set_term_score(parts[-1], RESOLVED_SCORE):
                updated += 1
    return updated


def ask_tolerance(console: Console, default: Optional[float]) -> Optional[float]:
    """Ask whether to review low-score entries and at which tolerance. None means skip."""
    console.clear()
    console.log("The dictionary has been populated. At this point, you may optionally fix some entries with low scores.",
                important=True)
    try:
        answer = console.read_line("Fix low-score entries? [y/N]: ").strip().upper()
    except EOFError:
        return None
    if answer not in ("YES", "Y"):
        return None

    console.clear()
    console.write("(Hint: A score of 0 usually means an all-caps entry. 0.5 will include any entries which are all lower-case.)")
    suffix = f" [{default:g}]" if default is not None else ""
    prompt = f"Enter a threshold floating-point score to be used{suffix}: "
    while True:
        try:
            raw = console.read_line(prompt).strip()
        except EOFError:
            return None
        if not raw and default is not None:
            return default
        try:
            value = float(raw)
        except ValueError:
            value = math.nan
        if not math.isnan(value):
            return value
        console.clear()
        console.write("Please enter a valid numeric value.")


def curate(dictionary: ListfileDictionary, tolerance: float, dictionary_path: Path, console: Console) -> None:
    session = CurationSession(
        dictionary,
        tolerance,
        read_line=console.read_line,
        write=console.write,
        persist=lambda: save_dictionary(dictionary, dictionary_path),
        clear=console.clear,
    )
    result = session.run()
    if result.quit:
        console.log("Saving dictionary and quitting...", important=True)
    console.log(f"Reviewed {result.resolved + result.replaced} of {result.total} low-score entries.", important=True)


# ── optimized lists ──────────────────────────────────────────────────────────


def container_path(output_dir: Path, package_name: str) -> Path:
    return output_dir / f"{package_name}.{OptimizedListContainer.EXTENSION}"


def flatfile_path(output_dir: Path, package_name: str, digest: bytes) -> Path:
    return output_dir / f"{LISTFILE_NAME}-{package_name}-{hash_hex(digest)}.txt"


def load_container(path: Path, package_name: str) -> OptimizedListContainer:
    if not path.is_file():
        return OptimizedListContainer(package_name)
    try:
        return OptimizedListContainer.deserialize(path.read_bytes())
    except (OSError, ListfileFormatError) as e:
        raise TaskError(f"Failed to load optimized list container {path}: {e}") from e


def load_containers(names: Iterable[str], output_dir: Path) -> Dict[str, OptimizedListContainer]:
    """Existing container (or a new empty one) for every package name, read before anything is written."""
    containers: Dict[str, OptimizedListContainer] = {}
    for name in names:
        if name not in containers:
            containers[name] = load_container(container_path(output_dir, name), name)
    return containers


def read_packages(packages: Sequence[PackageSource], console: Console) -> List[PackageSnapshot]:
    snapshots: List[PackageSnapshot] = []
    try:
        for pkg in packages:
            console.log(f"Hashing index and extracting listfile of {pkg.name}...")
            snapshots.append(PackageSnapshot(pkg.name, package_hash(pkg.index_bytes()), pkg.file_list()))
    except PackageReadError as e:
        raise TaskError(str(e), EXIT_NO_INPUT) from e
    return snapshots


def optimize_packages(
    dictionary: ListfileDictionary,
    snapshots: Sequence[PackageSnapshot],
    containers: Dict[str, OptimizedListContainer],
    console: Console,
) -> List[OptimizedListContainer]:
    """Store every package version into its per-name container. Returns the containers touched."""
    touched: Dict[str, OptimizedListContainer] = {}
    for snap in snapshots:
        console.log(f"Optimizing lists for {snap.name} ({hash_hex(snap.package_hash)})...")
        container = containers[snap.name]
        outcome = container.store(OptimizedList(snap.package_hash, dictionary.optimize_list(snap.paths)))
        _log.info("%s %s: %s", snap.name, hash_hex(snap.package_hash), outcome)
        touched[snap.name] = container
    return list(touched.values())


def write_outputs(containers: Sequence[OptimizedListContainer], output_dir: Path, fmt: str, console: Console) -> None:
    try:
        for container in containers:
            console.log(f"Saving lists for {container.package_name}...")
            if fmt == "flatfile":
                for olist in container:
                    target = flatfile_path(output_dir, container.package_name, olist.package_hash)
                    target.write_text("".join(p + "\n" for p in olist.optimized_paths), encoding="utf-8")
            else:
                container_path(output_dir, container.package_name).write_bytes(container.serialize())
    except OSError as e:
        raise TaskError(f"Failed to write optimized lists: {e}") from e


# ── tasks ────────────────────────────────────────────────────────────────────


def generate_listfile(input_dir: Path, output_dir: Path, console: Console) -> Path:
    console.log(f"Generating new listfile from directory {input_dir}")
    target = output_dir / LISTFILE_NAME
    try:
        with target.open("w", encoding="utf-8", newline="\n") as fh:
            for path in sorted(p for p in input_dir.rglob("*") if p.is_file()):
                child = PATH_SEPARATOR.join(path.relative_to(input_dir).parts)
                console.log(f"Found path {path}, writing path {child}.")
                fh.write(child + "\n")
    except OSError as e:
        raise TaskError(f"Failed to write listfile {target}: {e}") from e
    return target


def optimize(args: argparse.Namespace, settings: Settings, input_dir: Path, output_dir: Path,
             dictionary_path: Path, console: Console) -> None:
    console.log(f"Optimizing archive listfiles in directory {input_dir}...")
    dictionary = load_dictionary(dictionary_path, console)

    console.log("Loading packages...")
    packages: List[PackageSource] = list(discover_packages(input_dir, settings.package_extensions))
    if not packages:
        raise TaskError("No game packages were found in the input directory.", EXIT_NO_INPUT)
    console.log("Packages found: ")
    console.list_items(p.name for p in packages)

    snapshots = read_packages(packages, console)
    # A corrupt container must stop the run before curation checkpoints the dictionary
    containers = load_containers((s.name for s in snapshots), output_dir)

    for snap in snapshots:
        updated = populate_dictionary(dictionary, snap.paths, settings)
        console.log(f"Successfully loaded package listfile {snap.name} into dictionary. {updated} words updated.")

    if not args.no_fix:
        tolerance = ask_tolerance(console, settings.default_tolerance)
        if tolerance is not None:
            curate(dictionary, tolerance, dictionary_path, console)

    console.log("Optimizing lists using dictionary...", important=True)
    touched = optimize_packages(dictionary, snapshots, containers, console)

    console.log("Saving optimized lists...", important=True)
    write_outputs(touched, output_dir, args.format or settings.output_format, console)

    console.log("Saving dictionary...")
    save_dictionary(dictionary, dictionary_path)


def main(argv: Optional[Sequence[str]] = None, console: Optional[Console] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings(Path(args.config) if args.config else None)
    except SettingsError as e:
        print(f"[error] {e}", file=sys.stderr)
        return EXIT_TASK_ERROR
    configure_logging(settings, args.verbose, args.quiet)
    console = console or Console(verbose=args.verbose, clear_screen=args.clear)
    if args.verbose:
        console.verbose = True

    dictionary_path = Path(args.dictionary) if args.dictionary else settings.dictionary_path
    input_dir = Path(args.input)
    try:
        output_dir = sanity_checks(input_dir, args.output, dictionary_path, bool(args.dictionary))
        if args.task_type == "generate":
            if args.format == "compressed":
                console.log("Only flatfiles can be generated; ignoring --format compressed.", level="warning")
            generate_listfile(input_dir, output_dir, console)
        else:
            optimize(args, settings, input_dir, output_dir, dictionary_path, console)
    except TaskError as e:
        console.log(str(e), level="error")
        return e.exit_code
    return EXIT_SUCCESS


def cli() -> None:
    raise SystemExit(main(sys.argv[1:]))


if __name__ == "__main__":
    cli()
