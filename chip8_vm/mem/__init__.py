"""CHIP-8 memory map."""
