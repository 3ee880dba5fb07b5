"""
Producer module.
Contains the admission gate and the stream producer.
"""

from quotestream.producer.gate import AdmissionGate
from quotestream.producer.publisher import StreamProducer

__all__ = ["AdmissionGate", "StreamProducer"]
