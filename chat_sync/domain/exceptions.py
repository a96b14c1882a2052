"""统一业务异常模型。

所有跨模块抛出的错误都继承自 BusinessError，
便于在服务层或 UI 层做统一捕获与用户提示。

同步引擎依赖下面的分类决定失败后的走向：
- AuthFailure: token 缺失或被拒绝，必须重新登录，绝不静默重试。
- TransientNetworkFailure: 超时/连接失败，轮询路径上仅记录日志。
- ApiError: 服务端返回非 2xx 或无法解析的响应。
- ValidationFailure: 客户端校验失败，发生在任何网络调用之前。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "TOKEN_REJECTED"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 path、after_id 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class AuthFailure(BusinessError):
    """token 缺失、校验失败或登录失败。"""

    def __init__(self, code: str, message: str, http_status: int = 401, **extra):
        super().__init__(code, message, http_status, **extra)


class TransientNetworkFailure(BusinessError):
    """网络层错误，例如连接失败、超时等。"""

    def __init__(self, code: str, message: str, http_status: int = 503, **extra):
        super().__init__(code, message, http_status, **extra)


class ApiError(BusinessError):
    """服务端返回非 2xx 或响应体不合法时抛出。"""


class ValidationFailure(BusinessError):
    """参数或输入校验失败。"""
