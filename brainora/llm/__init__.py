"""Generation provider access package.

Architectural role:
    Provides provider configuration, the gateway contract consumed by the core,
    and the HTTP transport used to reach the Gemini API.

Module split:
    - `provider_config`: environment-driven model, endpoint and storage settings.
    - `service`: `ProviderGateway` protocol and the `GeminiGateway` adapter.
    - `client`: Gemini REST transport and response parsing.
"""
