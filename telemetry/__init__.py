# -*- coding: utf-8 -*-
"""JSONL event logging helpers."""
