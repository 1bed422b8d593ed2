from typing import Self, Optional
from core.simulator import SimulationEntity, SimulationEngine
from core.EventSink import EventSink
from core.event import Category, Event, Payload


class ProtocolLayer(SimulationEntity):
    """
    base of every layer generator

    a layer builds one layer-tagged Event per call and hands it to the sink;
    layers are chained lower -> upper the same way the stack is drawn
    """

    category: Category = Category.PHYSICAL
    layer_name: Optional[str] = None

    def __init__(self, lower_layer, simulator: SimulationEngine, sink: EventSink, name: str = 'zero'):
        super().__init__(name=name)
        self.lower_layer: Optional[Self] = lower_layer
        self.upper_layer: Optional[Self] = None
        if self.lower_layer:
            self.lower_layer.upper_layer = self
        self.simulator = simulator
        self.sink = sink
        simulator.register_entity(self)

    @property
    def rng(self):
        return self.simulator.rng

    def emit(self, protocol: str, message_type: str, payload: Payload,
             src=None, dst=None, category: Optional[Category] = None) -> Event:
        """
        build the event for this layer and record it
        """
        event = Event(
            category=category or self.category,
            layer=self.layer_name,
            protocol=protocol,
            message_type=message_type,
            payload=payload,
            timestamp=self.simulator.now,
            src=src,
            dst=dst,
        )
        self.sink.record(event)
        self.debug_log(f"{event.category.value} {protocol} {message_type}")
        return event

    def stack(self) -> list[Self]:
        """this layer and every layer above it, bottom first"""
        layers = []
        layer = self
        while layer is not None:
            layers.append(layer)
            layer = layer.upper_layer
        return layers
