"""Protocol core: framing, decoding, parameter store, commands, session."""
