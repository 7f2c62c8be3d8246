from dataclasses import dataclass


@dataclass(frozen=True)
class CorsPolicy:
    allow_origins: tuple[str, ...] = ("*",)
    allow_headers: tuple[str, ...] = ("authorization", "x-client-info", "apikey", "content-type")
    allow_methods: tuple[str, ...] = ("GET", "POST", "OPTIONS")

    @property
    def allows_any_origin(self) -> bool:
        return "*" in self.allow_origins

    def headers(self) -> dict[str, str]:
        origin = "*" if self.allows_any_origin else self.allow_origins[0]
        return {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Headers": ", ".join(self.allow_headers),
            "Access-Control-Allow-Methods": ", ".join(self.allow_methods),
        }


def build_cors_policy(origins: list[str]) -> CorsPolicy:
    cleaned = tuple(origin.strip() for origin in origins if origin and origin.strip())
    return CorsPolicy(allow_origins=cleaned or ("*",))
