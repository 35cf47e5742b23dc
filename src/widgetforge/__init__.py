"""WidgetForge: three-stage LLM pipeline for FlutterFlow custom code."""

__version__ = "0.1.0"
