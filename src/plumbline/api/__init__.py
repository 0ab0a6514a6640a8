from plumbline.api.direct import expect, passes

__all__ = ["expect", "passes"]
