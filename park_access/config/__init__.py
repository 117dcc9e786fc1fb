"""
Configuration module for Park Access Analysis.

Settings come from a YAML file (``settings.yaml`` in the package directory
unless another path is given); every key the file leaves out takes its value
from DEFAULT_CONFIG. Keys use dot notation, e.g. ``calibration.max_iterations``.
"""
import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Union, TypeVar, cast

# Type variable for generic type hints
T = TypeVar('T')

# Initialize logger
logger = logging.getLogger(__name__)


class ConfigDict(dict):
    """Dictionary subclass that provides attribute-style access to settings."""
    def __init__(self, *args, **kwargs):
        super(ConfigDict, self).__init__(*args, **kwargs)
        self.__dict__ = self

    def __getattr__(self, name):
        """Get attribute value, returning None if it doesn't exist."""
        return self.get(name)


class Config:
    """
    Settings of a park access run.

    Attributes:
        config_path (Path): YAML file the settings were read from.
        config (Dict[str, Any]): Settings by section.
    """

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        self.config_path = Path(config_path) if config_path is not None \
            else Path(__file__).parent / "settings.yaml"
        self.config: Dict[str, Any] = {}
        self.load()

    def load(self, config_path: Optional[Union[str, Path]] = None) -> None:
        """
        (Re)load the settings, replacing every current value.

        Args:
            config_path: YAML file to read. If None, rereads the current path.
        """
        if config_path is not None:
            self.config_path = Path(config_path)

        self.config = self._read_file(self.config_path)
        for section, values in DEFAULT_CONFIG.items():
            for key, value in values.items():
                if self.get(f"{section}.{key}") is None:
                    self.set(f"{section}.{key}", value)

        # Sections as attributes, e.g. config.calibration.specification
        for section, values in self.config.items():
            if isinstance(values, dict):
                setattr(self, section, ConfigDict(values))

    @staticmethod
    def _read_file(path: Path) -> Dict[str, Any]:
        # A missing or empty file means defaults only
        if not path.exists():
            logger.debug(f"Configuration file not found: {path}")
            return {}

        with open(path, 'r') as f:
            settings = yaml.safe_load(f) or {}

        logger.info(f"Loaded configuration from {path}")
        return settings

    def get(self, key: str, default: Optional[T] = None) -> T:
        """
        Get a configuration value.

        Args:
            key: Configuration key, using dot notation for nested keys.
            default: Default value to return if the key is not found.

        Returns:
            The configuration value, or the default value if the key is not found.
        """
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return cast(T, default)

        if value is None:
            return cast(T, default)
        return cast(T, value)

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value.

        Args:
            key: Configuration key, using dot notation for nested keys.
            value: Value to set.
        """
        keys = key.split('.')
        config = self.config

        for k in keys[:-1]:
            if k not in config or not isinstance(config[k], dict):
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def save(self, config_path: Optional[Union[str, Path]] = None) -> None:
        """
        Save the configuration to a YAML file.

        Args:
            config_path: Path to save the configuration file. If None, uses the
                         current configuration path.
        """
        if config_path is None:
            config_path = self.config_path
        else:
            config_path = Path(config_path)

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, 'w') as f:
            yaml.dump(self.config, f, default_flow_style=False)

        logger.info(f"Saved configuration to {config_path}")


# Default configuration values
DEFAULT_CONFIG = {
    'data': {
        'id_column': 'GEOID',
        'park_id_column': 'park_id',
        'tract_path': './data/tracts.geojson',
        'park_path': './data/parks.geojson',
        'centroid_path': './data/population_centroids.csv',
        'output_path': './results',
    },
    'distance': {
        'min_distance': 0.1,
        'log_transform': True,
    },
    'parks': {
        'min_acres': 1.0,
        'size_column': 'acres',
        'signal_column': 'checkins',
    },
    'weights': {
        'rule': 'queen',
        'threshold': 5000.0,
        'alpha': -1.0,
    },
    'traces': {
        'max_power': 30,
        'n_samples': 16,
        'seed': 1234,
    },
    'calibration': {
        'specification': 'ols',
        'accessibility_column': 'accessibility',
        'initial_betas': [-1.0, 0.5],
        'distance_lower': -10.0,
        'size_upper': 10.0,
        'signal_bound': 10.0,
        'max_iterations': 200,
        'tolerance': 1e-8,
        'step_size': 1e-5,
    },
    'selection': {
        'alpha': 0.05,
    },
    'impacts': {
        'num_simulations': 1000,
        'seed': 42,
    },
    'logging': {
        'level': 'INFO',
        'log_dir': 'logs',
        'log_file': 'park_access.log',
        'error_file': 'errors.log',
        'console': True,
    },
}

# Create a singleton instance
config = Config()

# Export the config object and Config class
__all__ = ['config', 'Config', 'ConfigDict', 'DEFAULT_CONFIG']
