import inspect
import logging
import os
from logging.handlers import TimedRotatingFileHandler


class BaseLogger:
    """
    基础日志类：
    - 控制台输出 + 可选的按天轮转文件输出
    - 未指定名称时自动推断调用类名
    - debug=True 时控制台降到 DEBUG（解析回退、后台进程超时等细节只在调试时可见）
    """

    FORMAT = (
        "%(asctime)s | %(name)s | %(levelname)s | "
        "[%(filename)s:%(lineno)d %(funcName)s] | %(processName)s/%(threadName)s | %(message)s"
    )

    def __init__(
        self,
        name: str | None = None,
        level: int = logging.INFO,
        debug: bool = False,
        to_file: bool = False,
        file_path: str | None = None,
        file_level: int = logging.WARNING,
    ):
        """
        :param name: logger 名称（默认取调用者类名）
        :param level: 控制台日志级别（默认 INFO）
        :param debug: 调试模式，强制控制台级别为 DEBUG
        :param to_file: 是否启用文件日志
        :param file_path: 日志文件路径（默认 logs/<name>.log）
        :param file_level: 文件日志的最低级别
        """
        if name is None:
            name = self._get_caller_class_name() or self.__class__.__name__
        if debug:
            level = logging.DEBUG

        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.logger.propagate = False

        # 同名 logger 只装一次 handler；重复构造时仅调整级别
        if self.logger.handlers:
            for h in self.logger.handlers:
                if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler):
                    h.setLevel(level)
            return

        formatter = logging.Formatter(self.FORMAT)

        ch = logging.StreamHandler()
        ch.setLevel(level)
        ch.setFormatter(formatter)
        self.logger.addHandler(ch)

        if to_file:
            if file_path is None:
                project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
                log_dir = os.path.join(project_root, "logs")
                os.makedirs(log_dir, exist_ok=True)
                file_path = os.path.join(log_dir, f"{self.logger.name}.log")

            fh = TimedRotatingFileHandler(
                filename=file_path,
                when="midnight",
                interval=1,
                backupCount=7,
                encoding="utf-8",
            )
            fh.setLevel(file_level)
            fh.setFormatter(formatter)
            self.logger.addHandler(fh)

    def _get_caller_class_name(self) -> str | None:
        """获取调用者类名（跳过 BaseLogger 自身）。"""
        for frame_record in inspect.stack():
            instance = frame_record.frame.f_locals.get("self")
            if instance and instance.__class__ != self.__class__:
                return instance.__class__.__name__
        return None

    def log_info(self, message: str, exc_info: bool = False):
        self.logger.info(message, exc_info=exc_info)

    def log_warning(self, message: str, exc_info: bool = False):
        self.logger.warning(message, exc_info=exc_info)

    def log_error(self, message: str, exc_info: bool = True):
        """记录 ERROR 日志（默认包含异常堆栈）"""
        self.logger.error(message, exc_info=exc_info)

    def log_debug(self, message: str, exc_info: bool = False):
        self.logger.debug(message, exc_info=exc_info)
