"""CHIP-8 CPU: registers, decoder, ALU."""
