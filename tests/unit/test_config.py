"""
Unit tests for core/config.py

Tests environment-driven settings without touching os.environ.
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from linkdigest.core.config import Config, TranscriptionSettings


class TestResolveOnnxCacheDir:
    """Tests for Config.resolve_onnx_cache_dir()"""

    @pytest.mark.unit
    def test_prefers_explicit_override(self, tmp_path):
        """Should use LINKDIGEST_ONNX_CACHE_DIR when set"""
        env = {'LINKDIGEST_ONNX_CACHE_DIR': str(tmp_path / 'models'), 'XDG_CACHE_HOME': '/xdg'}

        assert Config.resolve_onnx_cache_dir(env) == tmp_path / 'models'

    @pytest.mark.unit
    def test_uses_xdg_cache_home(self):
        """Should nest under XDG_CACHE_HOME"""
        assert Config.resolve_onnx_cache_dir({'XDG_CACHE_HOME': '/xdg'}) == Path('/xdg/linkdigest/onnx')

    @pytest.mark.unit
    def test_defaults_to_home_cache(self):
        """Should fall back to ~/.cache/linkdigest/onnx"""
        assert Config.resolve_onnx_cache_dir({}) == Path.home() / '.cache' / 'linkdigest' / 'onnx'


class TestTranscriptionSettings:
    """Tests for TranscriptionSettings.from_env()"""

    @pytest.mark.unit
    def test_reads_all_values(self, tmp_path):
        """Should capture keys, tool paths and ONNX commands"""
        env = {
            'OPENAI_API_KEY': 'sk-test',
            'DEEPGRAM_API_KEY': ' dg-test ',
            'FIRECRAWL_API_KEY': '',
            'YT_DLP_PATH': '/usr/local/bin/yt-dlp',
            'WHISPER_CPP_MODEL_PATH': '/models/ggml-base.bin',
            'LINKDIGEST_ONNX_PARAKEET_CMD': 'parakeet --model {model} {input}',
            'LINKDIGEST_ONNX_CACHE_DIR': str(tmp_path),
            'LINKDIGEST_ONNX_MODEL_BASE_URL': 'https://mirror.example.com/models/',
        }

        settings = TranscriptionSettings.from_env(env)

        assert settings.openai_api_key == 'sk-test'
        assert settings.deepgram_api_key == 'dg-test'
        assert settings.firecrawl_api_key is None
        assert settings.yt_dlp_path == '/usr/local/bin/yt-dlp'
        assert settings.whisper_cpp_binary == 'whisper-cli'
        assert settings.whisper_cpp_model_path == '/models/ggml-base.bin'
        assert settings.onnx_command('parakeet') == 'parakeet --model {model} {input}'
        assert settings.onnx_command('canary') is None
        assert settings.onnx_cache_dir == tmp_path
        assert settings.onnx_model_base_url == 'https://mirror.example.com/models'

    @pytest.mark.unit
    def test_rejects_unknown_onnx_model(self):
        """Should raise for models outside parakeet/canary"""
        with pytest.raises(ValueError):
            TranscriptionSettings().onnx_command('whisper')


class TestLoadEnvironment:
    """Tests for Config.load_environment()"""

    @pytest.mark.unit
    def test_prefers_env_local(self, tmp_path):
        """Should load .env.local instead of .env when both exist"""
        (tmp_path / '.env').write_text('LINKDIGEST_TEST_VALUE=from-env\n')
        (tmp_path / '.env.local').write_text('LINKDIGEST_TEST_VALUE=from-local\n')

        with patch('linkdigest.core.config.load_dotenv') as mock_load:
            Config.load_environment(tmp_path)

        mock_load.assert_called_once_with(tmp_path / '.env.local')

    @pytest.mark.unit
    def test_falls_back_to_env(self, tmp_path):
        """Should load .env when there is no .env.local"""
        (tmp_path / '.env').write_text('LINKDIGEST_TEST_VALUE=from-env\n')

        with patch('linkdigest.core.config.load_dotenv') as mock_load:
            Config.load_environment(tmp_path)

        mock_load.assert_called_once_with(tmp_path / '.env')
