"""领域层模型与协议。

包含：
- models: canonical 协议的 Message / ChatRequest / ChatResponse 等模型。
- exceptions: 业务异常类型定义。
"""
