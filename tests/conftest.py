import zipfile

import pytest

from scriptcomplete.completion import LoadPath, ModuleCache
from scriptcomplete.services.class_index_service import ClassDiscoveryCache, ClassIndex
from scriptcomplete.services.language_provider import ResolvedModule, Symbol

GUI_SOURCE = """\
class Roi(object):
    pass

class RoiManager(object):
    pass

def showMessage(text):
    pass
"""


class FakeType:
    def __init__(self, members):
        self._members = [Symbol(name) for name in members]

    def members(self):
        return list(self._members)


class FakeScope:
    def __init__(self, source, symbols=(), types=None):
        self.source = source
        self._symbols = [Symbol(name) for name in symbols]
        self._types = dict(types or {})
        self.asked = []

    def symbols_at(self, prefix):
        return [s for s in self._symbols if s.name.startswith(prefix)]

    def type_of_binding(self, name):
        self.asked.append(name)
        members = self._types.get(name)
        if members is None:
            members = self._types.get("*")
        return FakeType(members) if members is not None else None


class FakeIndexer:
    """Records every submitted source and answers with a FakeScope."""

    def __init__(self, symbols=(), types=None, fail=False):
        self.symbols = list(symbols)
        self.types = dict(types or {})
        self.fail = fail
        self.sources = []
        self.scopes = []

    def parse(self, source_text):
        self.sources.append(source_text)
        if self.fail:
            return None
        scope = FakeScope(source_text, self.symbols, self.types)
        self.scopes.append(scope)
        return scope


class FakeResolver:
    def __init__(self, modules=None):
        self.modules = dict(modules or {})
        self.requested = []

    def resolve(self, dotted_path):
        self.requested.append(dotted_path)
        if dotted_path not in self.modules:
            return None
        exports, path = self.modules[dotted_path]
        return ResolvedModule(dotted_path, {name: Symbol(name) for name in exports}, path)


class PendingDiscovery:
    """Class discovery whose index is never ready."""

    def is_ready(self):
        return False

    def find_containing(self, text):
        raise AssertionError("queried before ready")

    find_for_package = find_by_prefix = find_by_simple_name_prefix = find_containing


@pytest.fixture
def library_zip(tmp_path):
    """A jar-style archive with modules stored below Lib/."""
    archive = tmp_path / "jython-slim-2.7.3.jar"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("META-INF/MANIFEST.MF", "Manifest-Version: 1.0\n")
        zf.writestr("org/python/core/PyObject.class", b"\xca\xfe\xba\xbe")
        zf.writestr("Lib/os.py", "sep = '/'\n")
        zf.writestr("Lib/ij/__init__.py", "")
        zf.writestr("Lib/ij/gui.py", GUI_SOURCE)
        zf.writestr("Lib/ij/process.py", "class ImageProcessor(object):\n    pass\n")
        zf.writestr("Lib/json/__init__.py", "def dumps(obj):\n    pass\n")
        zf.writestr("Lib/json/decoder.py", "class JSONDecoder(object):\n    pass\n")
    return archive


@pytest.fixture
def scripts_dir(tmp_path):
    """A user script directory with a plain module and an empty-marker package."""
    root = tmp_path / "scripts"
    pkg = root / "mytools"
    pkg.mkdir(parents=True)
    (pkg / "__init__.py").write_text("")
    (pkg / "io.py").write_text("def read(path):\n    pass\n")
    (pkg / "plot.py").write_text("class Plotter(object):\n    pass\n")
    (pkg / "stats").mkdir()
    (pkg / "stats" / "__init__.py").write_text("")
    (root / "helpers.py").write_text("class Helper(object):\n    pass\n\ndef run():\n    pass\n")
    (root / "notes.txt").write_text("not a module")
    return root


@pytest.fixture
def load_path(scripts_dir):
    return LoadPath([str(scripts_dir)])


@pytest.fixture
def module_cache(library_zip, load_path):
    cache = ModuleCache(str(library_zip), load_path, class_discovery=False)
    cache.wait(timeout=10)
    yield cache
    cache.shutdown(wait=True)


@pytest.fixture
def class_discovery():
    return ClassDiscoveryCache.of(
        ClassIndex.from_names(
            [
                "ij.gui.Roi",
                "ij.gui.RoiManager",
                "ij.gui.GenericDialog",
                "ij.process.ImageProcessor",
                "ij.plugin.frame.RoiManager",
            ]
        )
    )
