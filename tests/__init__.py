"""Test package for Sonic Chat.

Structure:
    - unit/: Codec, parsing, configuration, buffering and state tests
    - integration/: Relay endpoint and consumer working end to end

The completion provider is replaced by an httpx MockTransport so the
suite never needs network access or credentials.
Leverages pytest with pytest-check for soft assertions.
"""
