"""
Function registry for rasterkit operations.

Public operations are declared with
:func:`~rasterkit.core.buffers.raster_function`, which tags them with a
``raster_category``. The registry scans the :mod:`rasterkit.processing`
package for tagged functions and files them under their category, so callers
can discover operations by name instead of importing them directly.

Valid categories:
- filters
- geometry
- analysis

Thread Safety:
    All functions in this module are thread-safe and use a lock to ensure
    consistent access to the global registry.
"""

import importlib
import inspect
import logging
import os
import pkgutil
import threading
from typing import Any, Callable, Dict, List, Optional

from rasterkit.constants.constants import VALID_FUNCTION_CATEGORIES

logger = logging.getLogger(__name__)

# Thread-safe lock for registry access
_registry_lock = threading.RLock()

# Global registry of functions by category
# Structure: {category: [function1, function2, ...]}
FUNC_REGISTRY: Dict[str, List[Callable]] = {}

# Flag to track if the registry has been initialized
_registry_initialized = False


def _reset_registry() -> None:
    FUNC_REGISTRY.clear()
    for category in VALID_FUNCTION_CATEGORIES:
        FUNC_REGISTRY[category] = []


def initialize_registry(force: bool = False) -> None:
    """
    Initialize the function registry and scan for functions to register.

    Called automatically on first lookup; call it directly to force a rescan.

    Args:
        force: Rebuild the registry even if it is already initialized
    """
    global _registry_initialized

    with _registry_lock:
        if _registry_initialized and not force:
            logger.debug("Function registry already initialized, skipping")
            return

        _reset_registry()
        _scan_and_register_functions()

        logger.debug(
            f"Function registry initialized with "
            f"{sum(len(funcs) for funcs in FUNC_REGISTRY.values())} functions "
            f"across {len(FUNC_REGISTRY)} categories"
        )
        _registry_initialized = True


def _scan_and_register_functions() -> None:
    """
    Import every module under :mod:`rasterkit.processing` and register the
    functions carrying a valid ``raster_category`` attribute.
    """
    from rasterkit import processing

    processing_path = os.path.dirname(processing.__file__)
    processing_package = "rasterkit.processing"

    logger.debug(f"Scanning for rasterkit functions in {processing_path}")

    for _, module_name, is_pkg in pkgutil.walk_packages([processing_path], f"{processing_package}."):
        module = importlib.import_module(module_name)
        if is_pkg:
            continue

        function_count = 0
        for _, obj in inspect.getmembers(module, inspect.isfunction):
            category = getattr(obj, "raster_category", None)
            if category in VALID_FUNCTION_CATEGORIES:
                _register_function(obj, category)
                function_count += 1

        logger.debug(f"Module {module_name}: found {function_count} registerable functions")


def register_function(func: Callable, category: Optional[str] = None) -> None:
    """
    Manually register a function with the function registry.

    Args:
        func: The function to register
        category: Category name (defaults to ``func.raster_category``)

    Raises:
        ValueError: If no category is given or the category is invalid
    """
    category = category or getattr(func, "raster_category", None)
    if category is None:
        raise ValueError(
            f"Function '{func.__name__}' has no raster_category attribute and no category was given"
        )
    if category not in VALID_FUNCTION_CATEGORIES:
        raise ValueError(
            f"Invalid category: {category}. "
            f"Valid categories are: {', '.join(sorted(VALID_FUNCTION_CATEGORIES))}"
        )

    with _registry_lock:
        if not _registry_initialized:
            initialize_registry()
        _register_function(func, category)


def _register_function(func: Callable, category: str) -> None:
    # Re-exported functions are seen once per importing module
    if func in FUNC_REGISTRY[category]:
        return

    FUNC_REGISTRY[category].append(func)
    logger.debug(f"Registered function '{func.__name__}' under '{category}'")


def get_functions_by_category(category: str) -> List[Callable]:
    """
    Get all functions registered for a category.

    Args:
        category: "filters", "geometry" or "analysis"

    Returns:
        A copy of the list of registered functions

    Raises:
        ValueError: If the category is not valid
    """
    with _registry_lock:
        if not _registry_initialized:
            initialize_registry()

        if category not in VALID_FUNCTION_CATEGORIES:
            raise ValueError(
                f"Invalid category: {category}. "
                f"Valid categories are: {', '.join(sorted(VALID_FUNCTION_CATEGORIES))}"
            )

        return list(FUNC_REGISTRY[category])


def get_function_by_name(function_name: str, category: Optional[str] = None) -> Optional[Callable]:
    """
    Find a registered function by name.

    Args:
        function_name: Name of the function to find
        category: Restrict the search to one category

    Returns:
        The function if found, None otherwise
    """
    categories = [category] if category is not None else sorted(VALID_FUNCTION_CATEGORIES)
    for name in categories:
        for func in get_functions_by_category(name):
            if func.__name__ == function_name:
                return func
    return None


def get_all_function_names(category: Optional[str] = None) -> List[str]:
    """Sorted names of the registered functions, optionally within one category."""
    categories = [category] if category is not None else sorted(VALID_FUNCTION_CATEGORIES)
    names = []
    for name in categories:
        names.extend(func.__name__ for func in get_functions_by_category(name))
    return sorted(names)


def get_function_info(func: Callable) -> Dict[str, Any]:
    """
    Get information about a registered function.

    Raises:
        ValueError: If the function has no ``raster_category`` attribute
    """
    if not hasattr(func, "raster_category"):
        raise ValueError(f"Function '{func.__name__}' does not have a raster_category attribute")

    return {
        "name": func.__name__,
        "category": func.raster_category,
        "doc": func.__doc__,
        "module": func.__module__,
    }


def is_registry_initialized() -> bool:
    """Check if the function registry has been initialized."""
    with _registry_lock:
        return _registry_initialized
