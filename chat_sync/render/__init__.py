"""渲染层：RenderSink 协议与内存实现。"""

from chat_sync.render.base import RenderSink
from chat_sync.render.memory import MemoryRenderSink

__all__ = ["RenderSink", "MemoryRenderSink"]
