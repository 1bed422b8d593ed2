from core import ProtocolLayer, SimulationEngine, EventSink, Category
from core.event import PresentationMessage


class PresentationLayer(ProtocolLayer):
    category = Category.PRESENTATION
    layer_name = "Presentation"

    def __init__(self, lower_layer: ProtocolLayer, simulator: SimulationEngine,
                 sink: EventSink, name: str = "zero"):
        super().__init__(lower_layer=lower_layer, name=name, simulator=simulator, sink=sink)

    def generate(self, data_type: str, encrypted: bool = False):
        message = PresentationMessage(
            data_type=data_type,
            encrypted=encrypted,
            certificate="Valid SSL Certificate" if encrypted else None,
        )
        return self.emit(
            protocol="SSL/TLS" if encrypted else "MIME",
            message_type="encrypt" if encrypted else "encode",
            payload=message,
        )
