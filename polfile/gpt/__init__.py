"""gpt.ini companion file support: the packed version counter and the INI rewrite."""
