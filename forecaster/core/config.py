"""
Configuration Management
========================
Centralized configuration with validation and defaults.

Every tunable of the forecasting engine lives here. Values can be
overridden from a YAML file (see ``config.example.yaml``).
"""

from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional, Dict, Any
import yaml

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class LearnerConfig:
    """Per-signal performance learning settings."""
    performance_window: int = 30            # Recent outcomes kept per signal
    session_window: int = 15                # In-session outcomes kept per signal
    min_observations_for_adjust: int = 10   # Total votes before factors move
    max_weight_factor: float = 1.95
    min_weight_factor: float = 0.05
    max_alpha_factor: float = 1.6
    min_alpha_factor: float = 0.4
    min_absolute_weight: float = 0.0003     # No vote is ever exactly zero
    inactivity_windows_for_decay: int = 3   # Decay after N full windows idle
    decay_rate: float = 0.025
    alpha_update_rate: float = 0.04
    probation_threshold: float = 0.40
    probation_exit_margin: float = 0.15     # Exit probation above threshold + margin
    probation_min_observations: int = 15
    probation_weight_cap: float = 0.10
    high_confidence_threshold: float = 0.75

    @property
    def inactivity_periods(self) -> int:
        return self.performance_window * self.inactivity_windows_for_decay


@dataclass
class RegimeLearnerConfig:
    """Regime profile learning settings."""
    accuracy_window: int = 35
    fill_ratio: float = 0.7                 # Learn once window is 70% full
    learning_rate_base: float = 0.028
    min_learning_rate: float = 0.01
    max_learning_rate: float = 0.07
    upper_accuracy: float = 0.62
    lower_accuracy: float = 0.38


@dataclass
class DriftConfig:
    """Drift Detection Method (DDM) settings."""
    warning_level: float = 2.0
    drift_level: float = 3.0
    min_samples: int = 30


@dataclass
class FusionConfig:
    """Consensus, uncertainty and confidence-level settings."""
    min_history: int = 52
    reflexive_window: int = 5
    reflexive_trigger_misses: int = 2
    reflexive_aggression: float = 0.25
    concentration_aggression: float = 0.6
    uncertainty_scale: float = 120.0
    uncertainty_threshold: float = 95.0
    strict_uncertainty_threshold: float = 65.0
    min_quality_score: float = 0.20
    high_confidence: float = 0.78
    medium_confidence: float = 0.65
    high_quality: float = 0.75
    medium_quality: float = 0.60
    prime_high_confidence: float = 0.72
    prime_medium_confidence: float = 0.60
    prime_high_quality: float = 0.70
    prime_medium_quality: float = 0.55
    forced_jitter: float = 0.02
    superposition_weight: float = 0.22
    max_reported_signals: int = 15
    extended_analyzers: bool = False        # Add the secondary analyzer set


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    file: Optional[str] = None
    max_size_mb: int = 10
    backup_count: int = 3


@dataclass
class EngineConfig:
    """
    Main configuration class.

    Loads from YAML file with sensible defaults.
    All settings are validated on load.
    """
    learner: LearnerConfig = field(default_factory=LearnerConfig)
    regime: RegimeLearnerConfig = field(default_factory=RegimeLearnerConfig)
    drift: DriftConfig = field(default_factory=DriftConfig)
    fusion: FusionConfig = field(default_factory=FusionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    seed: Optional[int] = None

    _config_path: Optional[Path] = field(default=None, repr=False)

    @classmethod
    def load(cls, config_path: str = "config.yaml") -> "EngineConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to config file

        Returns:
            EngineConfig instance with loaded values
        """
        path = Path(config_path)

        if not path.exists():
            # Return defaults if no config file
            return cls()

        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        config = cls.from_dict(data)
        config._config_path = path
        return config

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        """Build and validate a config from a plain dict."""
        config = cls()

        # TypeError from an unknown key is reported as a config error
        try:
            if 'learner' in data:
                config.learner = LearnerConfig(**data['learner'])
            if 'regime' in data:
                config.regime = RegimeLearnerConfig(**data['regime'])
            if 'drift' in data:
                config.drift = DriftConfig(**data['drift'])
            if 'fusion' in data:
                config.fusion = FusionConfig(**data['fusion'])
            if 'logging' in data:
                config.logging = LoggingConfig(**data['logging'])
        except TypeError as e:
            raise ValueError(f"Invalid configuration section: {e}") from e

        if 'seed' in data:
            config.seed = data['seed']

        config.validate()
        return config

    def validate(self):
        """Validate configuration values."""
        learner = self.learner
        if learner.performance_window < 2:
            raise ValueError(f"performance_window must be >= 2, got {learner.performance_window}")

        if not 0 < learner.min_weight_factor < 1 < learner.max_weight_factor:
            raise ValueError("weight factor bounds must straddle 1.0")

        if not 0 < learner.min_alpha_factor < 1 < learner.max_alpha_factor:
            raise ValueError("alpha factor bounds must straddle 1.0")

        if not 0 < learner.probation_threshold < 0.5:
            raise ValueError(f"probation_threshold must be 0-0.5, got {learner.probation_threshold}")

        if not 0 < learner.probation_weight_cap <= 1:
            raise ValueError(f"probation_weight_cap must be 0-1, got {learner.probation_weight_cap}")

        if not 0 < self.regime.fill_ratio <= 1:
            raise ValueError(f"fill_ratio must be 0-1, got {self.regime.fill_ratio}")

        if self.regime.lower_accuracy >= self.regime.upper_accuracy:
            raise ValueError("lower_accuracy must be less than upper_accuracy")

        if self.drift.warning_level >= self.drift.drift_level:
            raise ValueError("warning_level must be less than drift_level")

        fusion = self.fusion
        if fusion.medium_confidence >= fusion.high_confidence:
            raise ValueError("medium_confidence must be less than high_confidence")

        if fusion.medium_quality >= fusion.high_quality:
            raise ValueError("medium_quality must be less than high_quality")

        if fusion.min_history < 1:
            raise ValueError(f"min_history must be >= 1, got {fusion.min_history}")

        if fusion.strict_uncertainty_threshold > fusion.uncertainty_threshold:
            raise ValueError("strict_uncertainty_threshold must not exceed uncertainty_threshold")

        if self.logging.level.upper() not in LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {LOG_LEVELS}, got {self.logging.level}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            'learner': asdict(self.learner),
            'regime': asdict(self.regime),
            'drift': asdict(self.drift),
            'fusion': asdict(self.fusion),
            'logging': asdict(self.logging),
            'seed': self.seed,
        }
