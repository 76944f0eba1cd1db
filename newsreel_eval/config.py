"""
Evaluation configuration
Loaded from YAML, overridable from the command line
"""

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Union

import structlog
import yaml

from . import EVALUATION_DEFAULTS
from .evaluation.matcher import OUT_OF_ORDER_LOOKUP, OUT_OF_ORDER_MODES
from .evaluation.policies import DEFAULT_POLICY, available_policies
from .streaming.ground_truth import GroundTruthFormat

logger = structlog.get_logger()


class ConfigError(ValueError):
    """Raised for invalid configuration files or values"""


@dataclass
class EvaluationConfig:
    """Settings of one evaluation run"""

    prediction_path: Optional[str] = None
    ground_truth_path: Optional[str] = None
    window_size_millis: int = EVALUATION_DEFAULTS["window_size_millis"]
    lookahead_millis: int = 0
    match_policy: str = DEFAULT_POLICY
    out_of_order: str = OUT_OF_ORDER_LOOKUP
    max_recommendations: int = EVALUATION_DEFAULTS["max_recommendations"]
    blacklist: List[int] = field(default_factory=list)
    ground_truth_columns: Dict[str, int] = field(default_factory=dict)
    log_level: str = "INFO"
    json_logs: bool = False

    def __post_init__(self):
        # An empty YAML value means no lookahead
        if self.lookahead_millis is None:
            self.lookahead_millis = 0
        self.validate()

    def validate(self):
        if self.window_size_millis < 0:
            raise ConfigError("window_size_millis must be non-negative")
        if self.lookahead_millis < 0:
            raise ConfigError("lookahead_millis must be non-negative")
        if self.max_recommendations < 1:
            raise ConfigError("max_recommendations must be at least 1")
        if self.match_policy not in available_policies():
            raise ConfigError(
                f"match_policy must be one of {available_policies()}, got '{self.match_policy}'"
            )
        if self.out_of_order not in OUT_OF_ORDER_MODES:
            raise ConfigError(f"out_of_order must be one of {OUT_OF_ORDER_MODES}")

        known_columns = {f.name for f in fields(GroundTruthFormat)} - {"delimiter"}
        unknown = set(self.ground_truth_columns) - known_columns
        if unknown:
            raise ConfigError(f"Unknown ground_truth_columns: {sorted(unknown)}")

    @property
    def blacklisted_items(self) -> FrozenSet[int]:
        return frozenset(int(item_id) for item_id in self.blacklist)

    def ground_truth_format(self) -> GroundTruthFormat:
        return GroundTruthFormat(**self.ground_truth_columns)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EvaluationConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning("Ignoring unknown configuration keys", keys=sorted(unknown))

        try:
            return cls(**{key: value for key, value in data.items() if key in known})
        except TypeError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def merged(self, **overrides: Any) -> "EvaluationConfig":
        """Copy with every non-None override applied"""
        data = self.to_dict()
        data.update({key: value for key, value in overrides.items() if value is not None})
        return EvaluationConfig.from_dict(data)


def load_config(config_path: Optional[Union[str, Path]] = None) -> EvaluationConfig:
    """Load an EvaluationConfig from YAML; defaults when no path is given"""
    if config_path is None:
        return EvaluationConfig()

    path = Path(config_path)
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    # Allow the settings to sit under an "evaluation" section
    data = data.get("evaluation", data)
    return EvaluationConfig.from_dict(data)
