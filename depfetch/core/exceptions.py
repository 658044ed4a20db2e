"""统一异常体系

所有业务异常继承 DepFetchError，替代散落的 ValueError / RuntimeError。
CLI 层可据此输出友好提示。

可恢复与致命:
  - ManifestDecodeError: 本地吸收，视为不匹配（强制重新拉取）
  - FetchFailed: 存在缓存时回退，否则升级为 PackageUnavailable
  - PackageUnavailable / ExtractionError: 单个依赖致命，不影响其他依赖
"""

from __future__ import annotations


class DepFetchError(Exception):
    """框架基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(DepFetchError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(DepFetchError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"


class LockfileError(DepFetchError):
    """锁文件无法解析"""

    code = "LOCKFILE_ERROR"


class ManifestDecodeError(DepFetchError):
    """.manifest 内容格式错误"""

    code = "MANIFEST_DECODE_ERROR"


class FetchFailed(DepFetchError):
    """网络、传输或 HTTP 状态失败"""

    code = "FETCH_FAILED"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class PackageUnavailable(DepFetchError):
    """拉取失败且本地没有缓存副本"""

    code = "PACKAGE_UNAVAILABLE"

    def __init__(self, name: str, version: str, reason: str = "") -> None:
        message = f"依赖包 {name} {version} 拉取失败且本地无缓存副本"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.name = name
        self.version = version
        self.reason = reason


class ExtractionError(DepFetchError):
    """依赖包解压失败"""

    code = "EXTRACTION_ERROR"
