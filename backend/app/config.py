from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # Amadeus: flight offers, inspiration, traveled destinations
    amadeus_client_id: str = ""
    amadeus_client_secret: str = ""
    amadeus_base_url: str = "https://test.api.amadeus.com"

    # Viator: experience search + availability
    viator_api_key: str = ""
    viator_base_url: str = "https://api.sandbox.viator.com/partner"

    # OpenWeather
    openweather_api_key: str = ""
    openweather_base_url: str = "https://api.openweathermap.org/data/2.5"

    # Discovery engine
    layover_concurrency_limit: int = 8
    layover_request_timeout_seconds: float = 3.0
    candidate_cache_enabled: bool = True
    candidate_cache_ttl_seconds: int = 900  # 15 minutes
    fallback_candidates_enabled: bool = False

    # Revenue
    commission_base_rate: float = 0.20
    bundle_discount_rate: float = 0.15
    affiliate_share: float = 0.0

    # CORS
    cors_origins: str = "http://localhost:3000"

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
