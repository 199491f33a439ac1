"""Derived-image transform segments.

A derived URL is the delivery prefix followed by one or more transform
segments and the asset id:

    {delivery_base}/{cloud}/image/upload/{segment}[/{segment}...]/{asset_id}

Each segment is a comma-separated list of ``key_value`` parameters in the
order they were given, e.g. ``c_crop,w_640,h_480,x_10,y_20,q_60,f_jpg``.
Shared links embed these strings verbatim, so parameter order and value
formatting must not change.
"""

from dataclasses import dataclass

URL_GRAMMAR_VERSION = 1


@dataclass(frozen=True)
class Transform:
    """One transform segment: an ordered tuple of (key, value) pairs."""

    params: tuple[tuple[str, str], ...]

    @classmethod
    def build(cls, **params) -> "Transform":
        """Build a segment from keyword arguments, keeping their order.

        None values are omitted.
        """
        return cls(
            tuple((key, str(value)) for key, value in params.items() if value is not None)
        )

    def segment(self) -> str:
        return ",".join(f"{key}_{value}" for key, value in self.params)

    def get(self, key: str) -> str | None:
        for k, v in self.params:
            if k == key:
                return v
        return None
