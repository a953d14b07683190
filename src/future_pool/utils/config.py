"""
Система конфигурации для пула фьючерсов.
"""

import json
import yaml
import os
from typing import Any, Dict, Union
from dataclasses import dataclass, asdict, field
from pathlib import Path

from ..core.plan import DispatchPolicy, ExecutionBackend
from ..core.graceful_shutdown import ShutdownConfig
from ..core.task_executor import ExecutionConfig
from ..exceptions import InvalidConfigurationError
from .system import available_workers, WORKERS_ENV_VAR


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Config:
    """Основная конфигурация пула фьючерсов."""

    workers: int = field(default_factory=available_workers)
    policy: str = DispatchPolicy.BLOCK.value
    backend: str = ExecutionBackend.THREAD.value
    log_level: str = "INFO"

    # Конфигурации компонентов
    shutdown: ShutdownConfig = None
    execution: ExecutionConfig = None

    def __post_init__(self):
        """Инициализация конфигураций по умолчанию."""
        if self.shutdown is None:
            self.shutdown = ShutdownConfig()
        if self.execution is None:
            self.execution = ExecutionConfig()

    def to_dict(self) -> Dict[str, Any]:
        """Преобразование в словарь."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Создание из словаря."""
        data = dict(data or {})
        shutdown_data = data.pop('shutdown', None) or {}
        execution_data = data.pop('execution', None) or {}

        try:
            config = cls(**data)
            config.shutdown = ShutdownConfig(**shutdown_data)
            config.execution = ExecutionConfig(**execution_data)
        except TypeError as e:
            raise InvalidConfigurationError(f"Unknown configuration key: {e}") from e

        return config

    def validate(self) -> bool:
        """
        Валидация конфигурации.

        Raises:
            InvalidConfigurationError: Со списком всех найденных проблем
        """
        errors = []

        if isinstance(self.workers, bool) or not isinstance(self.workers, int) or self.workers < 1:
            errors.append("workers must be a positive integer")

        valid_policies = [p.value for p in DispatchPolicy]
        if self.policy not in valid_policies:
            errors.append(f"policy must be one of {valid_policies}")

        valid_backends = [b.value for b in ExecutionBackend]
        if self.backend not in valid_backends:
            errors.append(f"backend must be one of {valid_backends}")

        if str(self.log_level).upper() not in LOG_LEVELS:
            errors.append(f"log_level must be one of {list(LOG_LEVELS)}")

        timeout = self.shutdown.task_completion_timeout
        if timeout is not None and timeout < 0:
            errors.append("shutdown.task_completion_timeout must be >= 0")

        if errors:
            raise InvalidConfigurationError(f"Configuration validation failed: {'; '.join(errors)}")

        return True

    def update(self, **kwargs) -> 'Config':
        """Копия конфигурации с новыми значениями."""
        new_config = self.to_dict()
        new_config.update(kwargs)
        return Config.from_dict(new_config)


def load_config(file_path: Union[str, Path]) -> Config:
    """
    Загрузка конфигурации из файла.

    Args:
        file_path: Путь к YAML или JSON файлу

    Returns:
        Проверенный объект конфигурации
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    with open(file_path, 'r', encoding='utf-8') as f:
        if file_path.suffix.lower() in ['.yaml', '.yml']:
            data = yaml.safe_load(f)
        elif file_path.suffix.lower() == '.json':
            data = json.load(f)
        else:
            raise InvalidConfigurationError(f"Unsupported configuration file format: {file_path.suffix}")

    config = Config.from_dict(data)
    config.validate()

    return config


def save_config(config: Config, file_path: Union[str, Path], format: str = 'yaml'):
    """
    Сохранение конфигурации в файл.

    Args:
        config: Объект конфигурации
        file_path: Путь к файлу
        format: Формат файла ('yaml' или 'json')
    """
    file_path = Path(file_path)
    data = config.to_dict()

    file_path.parent.mkdir(parents=True, exist_ok=True)

    with open(file_path, 'w', encoding='utf-8') as f:
        if format.lower() == 'yaml':
            yaml.safe_dump(data, f, default_flow_style=False, indent=2)
        elif format.lower() == 'json':
            json.dump(data, f, indent=2, ensure_ascii=False)
        else:
            raise InvalidConfigurationError(f"Unsupported format: {format}")


def load_config_from_env() -> Config:
    """
    Загрузка конфигурации из переменных окружения.

    Returns:
        Проверенный объект конфигурации
    """
    config_data = {}

    if os.getenv(WORKERS_ENV_VAR):
        try:
            config_data['workers'] = int(os.getenv(WORKERS_ENV_VAR))
        except ValueError as e:
            raise InvalidConfigurationError(f"{WORKERS_ENV_VAR} must be an integer") from e

    if os.getenv('FUTURE_POOL_POLICY'):
        config_data['policy'] = os.getenv('FUTURE_POOL_POLICY').lower()

    if os.getenv('FUTURE_POOL_BACKEND'):
        config_data['backend'] = os.getenv('FUTURE_POOL_BACKEND').lower()

    if os.getenv('FUTURE_POOL_LOG_LEVEL'):
        config_data['log_level'] = os.getenv('FUTURE_POOL_LOG_LEVEL')

    shutdown_data = {}
    if os.getenv('SHUTDOWN_TIMEOUT'):
        shutdown_data['task_completion_timeout'] = float(os.getenv('SHUTDOWN_TIMEOUT'))

    if shutdown_data:
        config_data['shutdown'] = shutdown_data

    config = Config.from_dict(config_data)
    config.validate()
    return config
