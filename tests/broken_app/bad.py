raise RuntimeError("module cannot be imported")
