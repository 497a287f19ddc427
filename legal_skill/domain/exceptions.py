"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在 CLI / 服务层做统一捕获与用户提示。

注意：工具执行失败不是异常，而是以结构化结果回传给模型；
达到最大轮数、语言不一致也都不是错误。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "MALFORMED_REQUEST"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 provider、url 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class NetworkError(BusinessError):
    """网络层错误，例如连接失败、超时等。"""

    def __init__(self, code: str, message: str, http_status: int = 502, **extra):
        super().__init__(code, message, http_status, **extra)


class ApiError(BusinessError):
    """上游返回非 2xx 时抛出，原样携带上游状态码与响应体。"""

    def __init__(self, code: str, message: str, http_status: int = 400, body: str = "", **extra):
        self.body = body
        super().__init__(code, message, http_status, **extra)


class RateLimitError(ApiError):
    """Provider 限流错误（429），本层不做重试。"""


class ValidationError(BusinessError):
    """参数或配置校验失败。"""


class MalformedRequestError(ValidationError):
    """请求缺少必要字段（model / messages），在发起传输前快速失败。"""


class UpstreamFormatError(BusinessError):
    """上游 2xx 响应无法解析，例如工具调用参数不是合法 JSON。"""
