from core import ProtocolLayer, SimulationEngine, EventSink, Category
from core.event import SessionMessage

SESSION_STATES = {
    "establish": "connecting",
    "maintain": "active",
}


class SessionLayer(ProtocolLayer):
    category = Category.SESSION
    layer_name = "Session"

    def __init__(self, lower_layer: ProtocolLayer, simulator: SimulationEngine,
                 sink: EventSink, name: str = "zero"):
        super().__init__(lower_layer=lower_layer, name=name, simulator=simulator, sink=sink)

    def generate(self, session_id: str, action: str):
        """
        action: 'establish' | 'maintain' | anything else -> closing
        """
        message = SessionMessage(
            session_id=session_id,
            action=action,
            state=SESSION_STATES.get(action, "closing"),
            keep_alive=action == "maintain",
        )
        return self.emit(protocol="NetBIOS", message_type=action, payload=message)
