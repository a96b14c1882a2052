from dataclasses import dataclass


@dataclass
class Cursor:
    """增量拉取的水位线：id 小于等于 last_seen_id 的消息都已消费。

    0 表示尚未看到任何消息。重叠的轮询可能乱序完成，
    因此只能通过 advance() 前移，绝不直接赋值。
    """

    last_seen_id: int = 0

    def advance(self, candidate: int) -> bool:
        """仅当 candidate 大于当前值时前移，返回是否发生了移动。"""

        if candidate > self.last_seen_id:
            self.last_seen_id = candidate
            return True
        return False

    def is_new(self, message_id: int) -> bool:
        return message_id > self.last_seen_id
