import os
import configparser
from pathlib import Path

from production_planner.exceptions import ConfigError

MONTH_KEYS = ['jan', 'feb', 'mar', 'apr', 'may', 'jun',
              'jul', 'aug', 'sep', 'oct', 'nov', 'dec']

DEFAULT_SETTINGS = {
    'LOGGING': {
        'level': 'INFO',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'directory': 'logs',
        'max_size_mb': '10',
        'backup_count': '5',
        'console_output': 'True',
        'file_output': 'False'
    },
    'FORECASTING': {
        'max_history_days': '180',
        'min_same_day_samples': '3',
        'outlier_method': 'iqr',     # iqr | zscore
        'iqr_multiplier': '1.5',
        'zscore_threshold': '2.5',
        'dispersion_threshold': '1.2',
        'max_negative_binomial_r': '500',
        'momentum_window': '5',
        'momentum_threshold': '0.3',
        'momentum_strength': '0.8',
        'volatility_cv_threshold': '0.5'
    },
    'CONFIDENCE': {
        'high_same_day_points': '5',
        'medium_total_points': '5'
    },
    'WEATHER': {
        'sunny': '1.0',
        'cloudy': '1.0',
        'rain': '0.7',
        'storm': '0.5',
        'wind': '0.9',
        'cold': '0.9'
    },
    'CALENDAR': {
        'payday_factor': '1.2',
        'payday_start_day': '25',
        'payday_end_day': '5',
        'near_event_days': '2',
        'near_event_weight': '0.3'
    },
    'SEASONALITY': {month: '1.0' for month in MONTH_KEYS},
    'LEARNING': {
        'enabled': 'True',
        'window_days': '30',
        'min_days': '10',
        'min_window_points': '5',
        'min_confidence': '0.5',
        'min_payday_samples': '3',
        'min_weather_samples': '2'
    },
    'BIAS': {
        'decay': '0.7',
        'base_gain': '0.5',
        'gain_growth_rate': '0.1',
        'max_gain': '1.0',
        'gain_relaxation': '0.5',
        'min_observations': '3'
    },
    'NEWSVENDOR': {
        'disposal_cost': '0.0',
        'interval_lower': '0.05',
        'interval_upper': '0.95',
        'volatile_interval_lower': '0.01',
        'volatile_interval_upper': '0.99'
    },
    'ACCURACY': {
        'market_accuracy_threshold': '60.0',
        'day_accuracy_threshold': '60.0',
        'product_bias_threshold': '20.0',
        'product_high_priority_bias': '30.0',
        'min_sample_size': '2'
    },
    'BATCH_PROCESS': {
        'max_workers': '1'
    }
}


class Config:
    """Configuration manager for the Production Planner."""

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the configuration if not already initialized."""
        if self._initialized:
            return

        self._config_path = Path(
            os.environ.get('PRODUCTION_PLANNER_CONFIG', Path('config') / 'settings.ini')
        )
        self._config = configparser.ConfigParser(interpolation=None)
        self._config.read_dict(DEFAULT_SETTINGS)

        # Settings file overrides the built-in defaults
        if self._config_path.exists():
            self._config.read(self._config_path)

        self._initialized = True

    def load(self, path):
        """Load overrides from an ini file.

        Args:
            path: Path to the settings file

        Raises:
            ConfigError: If the file is missing or malformed
        """
        settings_path = Path(path)
        if not settings_path.exists():
            raise ConfigError(f"Settings file not found: {settings_path}")

        try:
            self._config.read(settings_path)
        except configparser.Error as e:
            raise ConfigError(f"Cannot parse settings file {settings_path}: {str(e)}")

        self._config_path = settings_path

    def write_default_config(self, path=None):
        """Write the built-in defaults to a settings file."""
        target = Path(path) if path else self._config_path
        target.parent.mkdir(parents=True, exist_ok=True)

        defaults = configparser.ConfigParser(interpolation=None)
        defaults.read_dict(DEFAULT_SETTINGS)
        with open(target, 'w') as configfile:
            defaults.write(configfile)

    def _lookup(self, reader, section, key, default):
        try:
            return reader(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get(self, section, key, default=None):
        """Get a raw string setting, or the default when it is absent."""
        return self._lookup(self._config.get, section, key, default)

    def get_int(self, section, key, default=None):
        return self._lookup(self._config.getint, section, key, default)

    def get_float(self, section, key, default=None):
        return self._lookup(self._config.getfloat, section, key, default)

    def get_boolean(self, section, key, default=None):
        return self._lookup(self._config.getboolean, section, key, default)

    def set(self, section, key, value):
        """Set configuration value in memory."""
        if not self._config.has_section(section):
            self._config.add_section(section)

        self._config.set(section, key, str(value))

    @property
    def log_config(self):
        """Get logging configuration."""
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            'directory': self.get('LOGGING', 'directory', 'logs'),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True),
            'file_output': self.get_boolean('LOGGING', 'file_output', False)
        }

    @property
    def forecasting_config(self):
        """Get baseline estimation and adjustment settings."""
        return {
            'max_history_days': self.get_int('FORECASTING', 'max_history_days', 180),
            'min_same_day_samples': self.get_int('FORECASTING', 'min_same_day_samples', 3),
            'outlier_method': self.get('FORECASTING', 'outlier_method', 'iqr'),
            'iqr_multiplier': self.get_float('FORECASTING', 'iqr_multiplier', 1.5),
            'zscore_threshold': self.get_float('FORECASTING', 'zscore_threshold', 2.5),
            'dispersion_threshold': self.get_float('FORECASTING', 'dispersion_threshold', 1.2),
            'max_negative_binomial_r': self.get_float('FORECASTING', 'max_negative_binomial_r', 500.0),
            'momentum_window': self.get_int('FORECASTING', 'momentum_window', 5),
            'momentum_threshold': self.get_float('FORECASTING', 'momentum_threshold', 0.3),
            'momentum_strength': self.get_float('FORECASTING', 'momentum_strength', 0.8),
            'volatility_cv_threshold': self.get_float('FORECASTING', 'volatility_cv_threshold', 0.5)
        }

    @property
    def confidence_config(self):
        """Get confidence level cut-offs."""
        return {
            'high_same_day_points': self.get_int('CONFIDENCE', 'high_same_day_points', 5),
            'medium_total_points': self.get_int('CONFIDENCE', 'medium_total_points', 5)
        }

    @property
    def weather_factors(self):
        """Get demand multipliers per weather condition."""
        return {
            condition: self.get_float('WEATHER', condition, float(default))
            for condition, default in DEFAULT_SETTINGS['WEATHER'].items()
        }

    @property
    def calendar_config(self):
        """Get payday and event settings."""
        return {
            'payday_factor': self.get_float('CALENDAR', 'payday_factor', 1.2),
            'payday_start_day': self.get_int('CALENDAR', 'payday_start_day', 25),
            'payday_end_day': self.get_int('CALENDAR', 'payday_end_day', 5),
            'near_event_days': self.get_int('CALENDAR', 'near_event_days', 2),
            'near_event_weight': self.get_float('CALENDAR', 'near_event_weight', 0.3)
        }

    @property
    def seasonality_factors(self):
        """Get month seasonality multipliers keyed by month number (1-12)."""
        return {
            index + 1: self.get_float('SEASONALITY', month, 1.0)
            for index, month in enumerate(MONTH_KEYS)
        }

    @property
    def learning_config(self):
        """Get settings for factors learned from item history."""
        return {
            'enabled': self.get_boolean('LEARNING', 'enabled', True),
            'window_days': self.get_int('LEARNING', 'window_days', 30),
            'min_days': self.get_int('LEARNING', 'min_days', 10),
            'min_window_points': self.get_int('LEARNING', 'min_window_points', 5),
            'min_confidence': self.get_float('LEARNING', 'min_confidence', 0.5),
            'min_payday_samples': self.get_int('LEARNING', 'min_payday_samples', 3),
            'min_weather_samples': self.get_int('LEARNING', 'min_weather_samples', 2)
        }

    @property
    def bias_config(self):
        """Get bias corrector constants."""
        return {
            'decay': self.get_float('BIAS', 'decay', 0.7),
            'base_gain': self.get_float('BIAS', 'base_gain', 0.5),
            'gain_growth_rate': self.get_float('BIAS', 'gain_growth_rate', 0.1),
            'max_gain': self.get_float('BIAS', 'max_gain', 1.0),
            'gain_relaxation': self.get_float('BIAS', 'gain_relaxation', 0.5),
            'min_observations': self.get_int('BIAS', 'min_observations', 3)
        }

    @property
    def newsvendor_config(self):
        """Get newsvendor optimizer settings."""
        return {
            'disposal_cost': self.get_float('NEWSVENDOR', 'disposal_cost', 0.0),
            'interval_lower': self.get_float('NEWSVENDOR', 'interval_lower', 0.05),
            'interval_upper': self.get_float('NEWSVENDOR', 'interval_upper', 0.95),
            'volatile_interval_lower': self.get_float('NEWSVENDOR', 'volatile_interval_lower', 0.01),
            'volatile_interval_upper': self.get_float('NEWSVENDOR', 'volatile_interval_upper', 0.99)
        }

    @property
    def accuracy_config(self):
        """Get recommendation thresholds."""
        return {
            'market_accuracy_threshold': self.get_float('ACCURACY', 'market_accuracy_threshold', 60.0),
            'day_accuracy_threshold': self.get_float('ACCURACY', 'day_accuracy_threshold', 60.0),
            'product_bias_threshold': self.get_float('ACCURACY', 'product_bias_threshold', 20.0),
            'product_high_priority_bias': self.get_float('ACCURACY', 'product_high_priority_bias', 30.0),
            'min_sample_size': self.get_int('ACCURACY', 'min_sample_size', 2)
        }

    @property
    def batch_config(self):
        """Get batch processing configuration."""
        return {
            'max_workers': self.get_int('BATCH_PROCESS', 'max_workers', 1)
        }

# Global config instance
config = Config()
