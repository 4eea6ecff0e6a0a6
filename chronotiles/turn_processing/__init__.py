"""Input processing helpers.

Every command (direction or rewind) goes through the same acceptance pipeline,
whether it comes from the HTTP surface, the websocket, or a headless script.
"""
