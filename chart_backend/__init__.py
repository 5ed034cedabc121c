"""Chart backend - the chart state engine and its REST/WebSocket surface."""
