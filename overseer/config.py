import sys
import json
import yaml
import logging
from typing import IO, Any, Dict, List, Optional

from overseer.errors import UsageError

log = logging.getLogger(__name__)


def parse_bootstrap_config(text: str) -> Dict[str, Any]:
    """
    Parses the serialized bootstrap configuration.

    JSON is the native format. Input that is not valid JSON is retried as
    YAML so hand-written configs can be piped in as well.

    :param text: The raw configuration text.
    :return: The configuration as a dictionary.
    :raises UsageError: If the text cannot be parsed into a mapping.
    """
    try:
        config = json.loads(text)
    except json.JSONDecodeError as json_error:
        try:
            config = yaml.safe_load(text)
        except yaml.YAMLError:
            raise UsageError(f"Daemon configuration is not valid JSON: {json_error}") from json_error

    if not isinstance(config, dict):
        raise UsageError("Daemon configuration must be a dictionary.")
    return config


def read_bootstrap_config(stream: Optional[IO[str]] = None) -> Dict[str, Any]:
    """Reads and parses the bootstrap configuration from stdin (or ``stream``)."""
    stream = stream or sys.stdin
    isatty = getattr(stream, "isatty", None)
    if isatty is not None and isatty():
        print("Reading daemon configuration from stdin...", file=sys.stderr)
    text = stream.read()
    log.debug(f"Read {len(text)} bytes of daemon configuration.")
    return parse_bootstrap_config(text)


def get_library_paths(config: Dict[str, Any]) -> List[str]:
    """Returns the `load` paths as a list, whatever shape they were given in."""
    libraries = config.get("load") or []
    if isinstance(libraries, str):
        return [libraries]
    return list(libraries)


def build_pool_config(pool_config: Dict[str, Any], bootstrap: Dict[str, Any]) -> Dict[str, Any]:
    """Copies the bootstrap `load` and `log` keys into one pool's configuration, overriding its own."""
    merged = dict(pool_config)
    merged["load"] = get_library_paths(bootstrap)
    merged["log"] = bootstrap.get("log")
    return merged
