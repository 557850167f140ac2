"""
Tests for the __main__.py entry point module
"""
import sys
import subprocess


def test_main_module_execution():
    """Test that the module can be executed via python -m"""
    result = subprocess.run(
        [sys.executable, '-m', 'helm_release', '--help'],
        capture_output=True,
        text=True,
        timeout=10
    )

    assert result.returncode == 0
    assert 'usage: helm-release' in result.stdout.lower()
    assert '--print-computed-version' in result.stdout


def test_main_module_import():
    """Test that __main__ can be imported"""
    import helm_release.__main__ as main_module
    assert hasattr(main_module, 'main')


def test_package_version():
    """Test that the package exposes a version string"""
    import helm_release
    assert isinstance(helm_release.__version__, str)
