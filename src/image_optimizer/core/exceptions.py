"""项目内使用的自定义异常定义。"""


class ImageOptimizerError(Exception):
    """基础异常类型。"""

    code = "error"


class InvalidConfigurationError(ImageOptimizerError):
    """配置不合法时抛出。"""

    code = "invalid_configuration"


class DecodeError(ImageOptimizerError):
    """输入文件无法读取或不是可识别的图像数据。"""

    code = "decode_error"


class UnsupportedFormatError(ImageOptimizerError):
    """既未指定输出格式，也无法从输入扩展名推断。"""

    code = "unsupported_format"


class EncodeError(ImageOptimizerError):
    """编码器在量化、调色板构建、透明度处理、重优化或编码阶段失败。"""

    code = "encode_error"


class ImageIOError(ImageOptimizerError):
    """目录创建、文件写入、元数据读取或备份操作失败。"""

    code = "io_error"


class ConversionCancelled(ImageOptimizerError):
    """批处理被取消，尚未开始的文件以此标记失败。"""

    code = "cancelled"


class WorkerDispatchError(ImageOptimizerError):
    """批处理无法调度到工作线程。"""

    code = "worker_dispatch_error"
