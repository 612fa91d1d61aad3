from logrouter.streaming.broadcaster import StreamBroadcaster, StreamSubscriber

__all__ = ["StreamBroadcaster", "StreamSubscriber"]
