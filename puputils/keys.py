import os, sys, importlib
from .puptypes import KeyStore

PUP_KEYS: KeyStore = KeyStore()

def use_keys(name: str):
    mod_name = os.path.basename(name).split(".")[0]
    dir_ = os.path.dirname(os.path.abspath(name))
    if dir_ not in sys.path:
        sys.path.append(dir_)
    mod = importlib.import_module(mod_name)
    globals().update({k: v for k, v in vars(mod).items() if k.isupper()})
