import os
import yaml


def load_config(section=None, file_path="config/ingest.yaml"):
    """
    加载 YAML 配置文件，并返回指定部分配置
    :param section: 配置块名称，例如 'parser'；为 None 时返回整个文件
    :param file_path: 配置文件路径（相对项目根目录，或绝对路径）
    """
    if os.path.isabs(file_path):
        config_file = file_path
    else:
        project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        config_file = os.path.join(project_root, file_path)
    with open(config_file, 'r', encoding='utf-8') as f:
        config = yaml.safe_load(f) or {}
    if section:
        return config[section]
    return config
