# core/schema_registry.py
from __future__ import annotations
from typing import Callable, List, Tuple
from sqlalchemy.engine import Engine
import pkgutil
import importlib
import logging
import sys
from pathlib import Path

log = logging.getLogger(__name__)

# Schema installer type
SchemaInstaller = Callable[[Engine], None]

# Registry: (name, installer_func), run in registration order
_REGISTRY: List[Tuple[str, SchemaInstaller]] = []

def _add(name: str, fn: SchemaInstaller) -> None:
    # Re-registering a name replaces the old installer instead of running it twice
    for i, (existing, _) in enumerate(_REGISTRY):
        if existing == name:
            _REGISTRY[i] = (name, fn)
            return
    _REGISTRY.append((name, fn))

def register(
    name: str | SchemaInstaller, installer: SchemaInstaller | None = None
) -> SchemaInstaller | Callable[[SchemaInstaller], SchemaInstaller]:
    """
    Registers a schema installer function.
    Can be used as a decorator (@register / @register("name")) or a call (register("name", fn)).
    """
    if isinstance(name, str) and installer is None:
        def decorator(fn: SchemaInstaller) -> SchemaInstaller:
            _add(name, fn)
            return fn
        return decorator

    elif callable(name) and installer is None:
        fn = name
        _add(fn.__name__, fn)
        return fn

    elif isinstance(name, str) and callable(installer):
        _add(name, installer)
        return installer

    raise TypeError("Invalid usage of @register")

def registered_names() -> List[str]:
    return [name for name, _ in _REGISTRY]

def run_all(engine: Engine) -> List[str]:
    """
    Runs all registered schema installers in order.
    A failing installer is logged and skipped; the names of failures are returned.
    """
    failed: List[str] = []
    log.info("SchemaRegistry: running %d installers", len(_REGISTRY))
    for name, installer_fn in _REGISTRY:
        try:
            log.debug("Applying schema: %s", name)
            installer_fn(engine)
        except Exception:
            log.exception("FAILED to apply schema %s", name)
            failed.append(name)
    return failed

def auto_discover(
    start_path: str | Path = "schemas",
    root_package: str | None = None
) -> List[str]:
    """
    Imports every module in a directory so their @register decorators run.

    :param start_path: directory to scan (e.g. the project's "schemas" folder).
    :param root_package: parent package name, if the folder lives inside one.
    """
    if isinstance(start_path, str):
        start_path = Path(start_path)

    if not start_path.is_dir():
        log.warning("Schema auto_discover: %s is not a directory, skipping", start_path)
        return []

    if root_package:
        base_import_name = f"{root_package}.{start_path.name}"
    else:
        parent_dir = str(start_path.parent.resolve())
        if parent_dir not in sys.path:
            sys.path.insert(0, parent_dir)
        base_import_name = start_path.name

    discovered: List[str] = []
    for _, module_name, is_pkg in pkgutil.walk_packages(
        path=[str(start_path)],
        prefix=f"{base_import_name}."
    ):
        if is_pkg:
            continue
        importlib.import_module(module_name)
        discovered.append(module_name)
    log.info("Schema auto_discover: %d modules under %s", len(discovered), start_path)
    return discovered
