"""Production orchestration: planning, coordination and external tool execution."""
