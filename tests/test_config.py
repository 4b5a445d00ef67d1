"""
Tests for configuration loading from the environment.
"""

import os
import unittest
from unittest.mock import patch

from config.settings import AppConfig, ConfigManager


class TestConfigManager(unittest.TestCase):

    def setUp(self):
        self.manager = ConfigManager()

    @patch.dict(os.environ, {
        'OPENAI_API_KEY': 'sk-test',
        'OPENAI_MODEL': 'gpt-4o',
        'MIN_TOTAL_BUDGET': '30,000,000',
        'PLANS_DIR': '/tmp/plans',
        'MAX_RETRIES': '5',
    })
    def test_environment_overrides(self):
        config = self.manager.load_config()

        self.assertEqual(config.openai_api_key, 'sk-test')
        self.assertTrue(config.has_openai_key)
        self.assertEqual(self.manager.get_openai_model(), 'gpt-4o')
        self.assertEqual(config.min_total_budget, 30_000_000)
        self.assertEqual(self.manager.get_plans_dir(), '/tmp/plans')
        self.assertEqual(self.manager.get_max_retries(), 5)

    @patch.dict(os.environ, {'MIN_TOTAL_BUDGET': 'fifty million', 'OPENAI_MODEL': ''})
    def test_invalid_values_fall_back_to_defaults(self):
        config = self.manager.load_config()

        self.assertEqual(config.min_total_budget, AppConfig().min_total_budget)
        self.assertEqual(config.openai_model, AppConfig().openai_model)

    def test_missing_api_key(self):
        with patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ValueError):
                self.manager.get_openai_api_key()

    def test_config_is_cached_until_reset(self):
        with patch.dict(os.environ, {'MAX_RETRIES': '2'}):
            self.assertEqual(self.manager.get_max_retries(), 2)
        with patch.dict(os.environ, {'MAX_RETRIES': '7'}):
            self.assertEqual(self.manager.get_max_retries(), 2)
            self.manager.reset()
            self.assertEqual(self.manager.get_max_retries(), 7)


if __name__ == '__main__':
    unittest.main()
