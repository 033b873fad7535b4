"""YAML configuration loader with validation and a single-use lifecycle."""

import hashlib
import json
import time
from enum import Enum
from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError

from paper_daily.config.schemas import DigestConfig


logger = structlog.get_logger()


class ConfigState(str, Enum):
    """Lifecycle of a :class:`ConfigLoader`."""

    UNLOADED = "UNLOADED"
    LOADING = "LOADING"
    VALIDATED = "VALIDATED"
    READY = "READY"
    FAILED = "FAILED"


_NEXT_STATES: dict[ConfigState, frozenset[ConfigState]] = {
    ConfigState.UNLOADED: frozenset({ConfigState.LOADING}),
    ConfigState.LOADING: frozenset({ConfigState.VALIDATED, ConfigState.FAILED}),
    ConfigState.VALIDATED: frozenset({ConfigState.READY}),
    ConfigState.READY: frozenset(),
    ConfigState.FAILED: frozenset(),
}


class ConfigStateError(Exception):
    """A loader was driven out of order, e.g. reused after a load."""

    def __init__(self, from_state: ConfigState, to_state: ConfigState) -> None:
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Config loader cannot move from {from_state.value} to {to_state.value}"
        )


class ConfigValidationError(Exception):
    """Raised when a configuration file cannot be loaded or validated."""

    def __init__(self, errors: list[dict[str, str]], file_path: str) -> None:
        """Initialize the error.

        Args:
            errors: Validation error details (``loc``, ``msg``, ``type``).
            file_path: Path to the file that failed validation.
        """
        self.errors = errors
        self.file_path = file_path
        super().__init__(f"Validation failed for {file_path}: {len(errors)} errors")


class ConfigLoader:
    """Loads one ``paper-daily.yaml`` into an immutable :class:`DigestConfig`.

    UNLOADED -> LOADING -> VALIDATED -> READY, or FAILED on any error.
    A loader instance is single-use.
    """

    def __init__(self, run_id: str = "") -> None:
        """Initialize the loader.

        Args:
            run_id: Identifier of the run the configuration is for.
        """
        self._run_id = run_id
        self._state = ConfigState.UNLOADED
        self._checksum: str | None = None
        self._validation_errors: list[dict[str, str]] = []
        self._validation_duration_ms: float = 0.0

    @property
    def state(self) -> ConfigState:
        """Get the current loader state."""
        return self._state

    @property
    def checksum(self) -> str | None:
        """SHA-256 of the loaded file, once read."""
        return self._checksum

    @property
    def validation_errors(self) -> list[dict[str, str]]:
        """Get validation errors if any."""
        return self._validation_errors.copy()

    def load(self, path: Path) -> DigestConfig:
        """Read, parse and validate a configuration file.

        Args:
            path: Path to the YAML file.

        Returns:
            Validated configuration.

        Raises:
            ConfigValidationError: If the file is missing, malformed or invalid.
        """
        start_time = time.perf_counter()
        self._advance(ConfigState.LOADING)
        log = logger.bind(component="config", run_id=self._run_id, file_path=str(path))

        try:
            content_bytes = path.read_bytes()
            self._checksum = hashlib.sha256(content_bytes).hexdigest()
            data = yaml.safe_load(content_bytes.decode("utf-8")) or {}
            if not isinstance(data, dict):
                self._fail(log, "root", "top-level YAML value must be a mapping", "type_error")
                raise ConfigValidationError(self._validation_errors, str(path))
            config = DigestConfig.model_validate(data)
        except FileNotFoundError as e:
            self._fail(log, "file", str(e), "file_not_found")
            raise ConfigValidationError(self._validation_errors, str(path)) from e
        except yaml.YAMLError as e:
            self._fail(log, "yaml", str(e), "yaml_parse_error")
            raise ConfigValidationError(self._validation_errors, str(path)) from e
        except ValidationError as e:
            self._advance(ConfigState.FAILED)
            for err in e.errors():
                self._validation_errors.append(
                    {
                        "loc": ".".join(str(loc) for loc in err["loc"]),
                        "msg": err["msg"],
                        "type": err["type"],
                    }
                )
            log.error(
                "config_validation_failed",
                phase="FAILED",
                validation_error_count=len(self._validation_errors),
                errors=self._validation_errors,
            )
            raise ConfigValidationError(self._validation_errors, str(path)) from e

        self._advance(ConfigState.VALIDATED)
        self._validation_duration_ms = (time.perf_counter() - start_time) * 1000
        log.info(
            "config_validation_complete",
            file_sha256=self._checksum,
            interest_keyword_count=len(config.interest_keywords),
            direction_count=len(config.directions),
            config_validation_duration_ms=self._validation_duration_ms,
        )

        self._advance(ConfigState.READY)
        return config

    def _advance(self, to_state: ConfigState) -> None:
        if to_state not in _NEXT_STATES[self._state]:
            logger.error(
                "invariant_violation",
                component="config",
                run_id=self._run_id,
                from_state=self._state.value,
                to_state=to_state.value,
            )
            raise ConfigStateError(self._state, to_state)
        self._state = to_state

    def _fail(
        self,
        log: structlog.stdlib.BoundLogger,
        loc: str,
        message: str,
        error_type: str,
    ) -> None:
        self._advance(ConfigState.FAILED)
        self._validation_errors.append({"loc": loc, "msg": message, "type": error_type})
        log.error("config_load_failed", phase="FAILED", error=message, error_type=error_type)

    def get_validation_summary_json(self) -> str:
        """Validation summary as JSON with stable ordering."""
        summary = {
            "run_id": self._run_id,
            "state": self._state.value,
            "file_sha256": self._checksum,
            "validation_error_count": len(self._validation_errors),
            "validation_errors": self._validation_errors,
            "validation_duration_ms": self._validation_duration_ms,
        }
        return json.dumps(summary, sort_keys=True, indent=2)
