"""领域层模型与协议。

包含：
- models: 会话记录、工具调用、工具结果与配置等数据模型。
- listener: 循环控制器回调 UI 协作者的 AgentListener 协议。
- exceptions: 业务异常类型定义。
"""
