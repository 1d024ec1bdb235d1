"""
Configuration management and loading.

Reads pipeline settings and content briefs from YAML files.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from content_engine.core.models import BrandContext, ContentBrief, TargetLength
from content_engine.core.pipeline import PipelineConfig

# section -> {yaml key: PipelineConfig field}
_CONFIG_SECTIONS: Dict[str, Dict[str, str]] = {
    'models': {
        'draft': 'draft_model',
        'quality': 'quality_model',
        'rewrite': 'rewrite_model',
    },
    'quality': {
        'threshold': 'quality_threshold',
        'auto_publish_threshold': 'auto_publish_threshold',
        'max_rewrites': 'max_rewrites',
    },
    'budget': {
        'daily_cost_limit': 'daily_cost_limit',
        'max_cost_per_content': 'max_cost_per_content',
    },
    'rate_limit': {
        'requests_per_minute': 'requests_per_minute',
        'max_concurrent': 'max_concurrent',
    },
}

_INT_FIELDS = {
    'quality_threshold',
    'auto_publish_threshold',
    'max_rewrites',
    'requests_per_minute',
    'max_concurrent',
}

_MONEY_FIELDS = {'daily_cost_limit', 'max_cost_per_content'}

_BRIEF_KEYS = {
    'type', 'site_id', 'target_keyword', 'tone', 'target_length',
    'secondary_keywords', 'destination', 'category', 'experience_id',
    'include_elements', 'source_data', 'brand_context', 'id',
}

_BRAND_KEYS = {
    'site_name', 'personality', 'writing_style', 'do_list', 'dont_list',
    'mission', 'target_audience', 'unique_selling_points',
}

_LIST_BRAND_KEYS = {'personality', 'do_list', 'dont_list', 'unique_selling_points'}


def _read_yaml(path: str, what: str) -> Any:
    """Load a YAML file, raising FileNotFoundError or yaml.YAMLError."""
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"{what} file not found: {path}")

    with open(file_path, 'r', encoding='utf-8') as f:
        try:
            return yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in {what.lower()} file {path}: {e}")


def _check_keys(data: Dict, allowed: set, where: str) -> None:
    unknown = set(data.keys()) - allowed
    if unknown:
        raise ValueError(f"Unknown keys in {where}: {unknown}")


def _parse_config_value(field_name: str, value: Any, where: str) -> Any:
    if field_name in _INT_FIELDS:
        if field_name == 'quality_threshold' and value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"'{where}' must be an integer")
        return value
    if field_name in _MONEY_FIELDS:
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            raise ValueError(f"'{where}' must be a number")
        return value
    if not isinstance(value, str):
        raise ValueError(f"'{where}' must be a string")
    return value


def load_pipeline_config(path: str) -> PipelineConfig:
    """Load and validate pipeline configuration from a YAML file.

    Every section is optional; omitted settings keep their defaults.
    Unknown sections or keys are rejected rather than ignored.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated PipelineConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    raw_config = _read_yaml(path, "Pipeline config")
    if raw_config is None:
        return PipelineConfig()
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a mapping")

    _check_keys(raw_config, set(_CONFIG_SECTIONS) | {'provider'}, "configuration")

    values: Dict[str, Any] = {}
    if 'provider' in raw_config:
        values['provider'] = _parse_config_value('provider', raw_config['provider'], 'provider')

    for section, mapping in _CONFIG_SECTIONS.items():
        if section not in raw_config:
            continue
        section_data = raw_config[section]
        if not isinstance(section_data, dict):
            raise ValueError(f"'{section}' must be a dictionary")
        _check_keys(section_data, set(mapping), section)
        for key, value in section_data.items():
            field_name = mapping[key]
            values[field_name] = _parse_config_value(field_name, value, f"{section}.{key}")

    return PipelineConfig(**values)


def _string_tuple(value: Any, where: str) -> tuple:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"'{where}' must be a list of strings")
    return tuple(value)


def _parse_brand_context(data: Any) -> Optional[BrandContext]:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ValueError("'brand_context' must be a dictionary")
    _check_keys(data, _BRAND_KEYS, "brand_context")

    values = {}
    for key, value in data.items():
        if key in _LIST_BRAND_KEYS:
            values[key] = _string_tuple(value, f"brand_context.{key}")
        else:
            values[key] = None if value is None else str(value)
    return BrandContext(**values)


def parse_brief(data: Dict[str, Any]) -> ContentBrief:
    """Build a ContentBrief from already-loaded YAML/JSON data.

    Raises:
        ValueError: If a key is unknown or a value is invalid
    """
    if not isinstance(data, dict):
        raise ValueError("Brief must be a mapping")
    _check_keys(data, _BRIEF_KEYS, "brief")

    for required in ('type', 'site_id', 'target_keyword', 'tone', 'target_length'):
        if required not in data:
            raise ValueError(f"Missing required '{required}' in brief")

    length = data['target_length']
    if not isinstance(length, dict):
        raise ValueError("'target_length' must be a dictionary with 'min' and 'max'")
    _check_keys(length, {'min', 'max'}, "target_length")
    if 'min' not in length or 'max' not in length:
        raise ValueError("'target_length' requires both 'min' and 'max'")

    source_data = data.get('source_data')
    if source_data is not None and not isinstance(source_data, dict):
        raise ValueError("'source_data' must be a dictionary")

    values = dict(
        type=data['type'],
        site_id=str(data['site_id']),
        target_keyword=str(data['target_keyword']),
        tone=data['tone'],
        target_length=TargetLength(min=int(length['min']), max=int(length['max'])),
        secondary_keywords=_string_tuple(data.get('secondary_keywords'), 'secondary_keywords'),
        destination=data.get('destination'),
        category=data.get('category'),
        experience_id=data.get('experience_id'),
        include_elements=_string_tuple(data.get('include_elements'), 'include_elements'),
        source_data=source_data,
        brand_context=_parse_brand_context(data.get('brand_context')),
    )
    if data.get('id'):
        values['id'] = str(data['id'])
    return ContentBrief(**values)


def load_brief(path: str) -> ContentBrief:
    """Load and validate a content brief from a YAML file.

    Raises:
        FileNotFoundError: If the brief file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If the brief is empty or invalid
    """
    raw_brief = _read_yaml(path, "Brief")
    if not raw_brief:
        raise ValueError("Brief file is empty")
    return parse_brief(raw_brief)
