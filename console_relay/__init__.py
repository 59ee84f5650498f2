"""Console Relay - live log relay and remote command bridge for a game server.

Sub-packages:
- gateway/        - FastAPI app: /ws, /log, /command, health, metrics, static
- sources/        - log source back-ends (systemd journal, plain file)
- logging/        - structlog configuration and logger injection
- observability/  - Prometheus metrics

Top-level modules:
- bus         - BroadcastBus: one producer, many bounded subscriptions
- reader      - LogSourceReader: blocking tail thread feeding the bus
- fanout      - FanoutSession: one subscription relayed to one websocket
- command     - CommandBridge: writes commands to the control input
- bootstrap   - AppContext creation, composition root
- settings    - pydantic-settings configuration

Architecture:
    log source --(reader thread)--> BroadcastBus --> FanoutSession x N --> clients
    POST /command --> CommandBridge --> control input (server stdin)
"""

__version__ = "0.1.0"
