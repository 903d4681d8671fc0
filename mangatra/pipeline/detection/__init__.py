"""Text region detection: raw tensor decoding and the ONNX detector backend."""

from mangatra.pipeline.detection.decode import DetectionDecoder, non_max_suppression

__all__ = ["DetectionDecoder", "non_max_suppression"]
