from modelkeeper.persistence.formats.base import FormatEngine
from modelkeeper.persistence.formats.yaml_engine import YamlFormatEngine, dump_yaml, load_yaml

__all__ = ["FormatEngine", "YamlFormatEngine", "dump_yaml", "load_yaml"]
