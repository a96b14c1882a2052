"""领域层模型与协议。

包含：
- models: Message / UserProfile / PresenceSnapshot 等统一数据模型。
- cursor: 增量同步的水位线。
- session: TokenStore 抽象。
- validators: 注册与发送前的客户端校验规则。
- exceptions: 业务异常类型定义。
"""
