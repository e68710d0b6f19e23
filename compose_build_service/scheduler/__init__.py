# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" This is a sub-module for the dependency-driven build scheduling.

There is no scheduler process: every request reads the job from the
database, applies its change and writes it back before returning.
"""
