# Client -> server
EVENT_JOIN_ROOM = "join-room"  # data: {"roomId": str}
EVENT_SIGNAL = "signal"  # data: {"target": connection id, "signal": any}

# Server -> client
EVENT_CONNECTED = "connected"  # data: {"id": own connection id}
EVENT_ROOM_JOINED = "room-joined"  # data: {"roomId": str, "peers": [connection id]}
EVENT_USER_CONNECTED = "user-connected"  # data: joining connection id
EVENT_USER_DISCONNECTED = "user-disconnected"  # data: departing connection id
# "signal" is reused outbound, data: {"sender": connection id, "signal": any}

# **Frame shape**
# - every WebSocket text frame is a JSON object `{"event": <name>, "data": <payload>}`
# - unknown events and malformed frames are dropped
