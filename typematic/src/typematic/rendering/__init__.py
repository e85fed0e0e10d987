from .jinja_sink import JinjaRenderer, JinjaRenderSink
