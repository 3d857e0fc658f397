"""Structured call logging: fields, levels, options and client logging interceptors."""