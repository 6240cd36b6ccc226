"""Gradio layout composition for the face morphing studio."""

import logging
from typing import Any, Optional

import gradio as gr

from config.settings import AppConfig
from modules.services.gemini_service import GeminiMorphService
from modules.services.history_service import MorphHistory
from modules.session.models import MorphSession
from modules.ui.callbacks import ViewState, build_callbacks
from modules.utils.image_utils import data_uri_to_image

logger = logging.getLogger(__name__)

TIP_TEXT = (
    "**Tip:** For best results, use a clear portrait with good lighting. Simple prompts like "
    "\"turn into a vampire\" or \"make it look like an oil painting\" work best with the `{model}` model."
)


def _display_image(value: Optional[str]) -> Any:
    """Decode a data URI for an image component; undecodable data shows nothing."""
    try:
        return data_uri_to_image(value)
    except (OSError, ValueError) as exc:
        logger.warning("Skipping undecodable image: %s", exc)
        return None


def _gallery_items(view: ViewState) -> list[tuple[Any, str]]:
    items = []
    for image, caption in view.gallery:
        decoded = _display_image(image)
        if decoded is not None:
            items.append((decoded, caption))
    return items


def _download_update(path: Optional[str]) -> Any:
    return gr.update(value=path, visible=path is not None)


def _to_outputs(view: ViewState, download: Optional[str]) -> tuple[Any, ...]:
    """Map a ViewState onto the component order used by form-level events."""
    return (
        view.session,
        view.history,
        _display_image(view.original_image),
        _display_image(view.morphed_image),
        view.prompt,
        view.seed,
        view.status,
        gr.update(value=view.submit_label, interactive=view.submit_enabled),
        _gallery_items(view),
        _download_update(download),
    )


def _to_result_outputs(view: ViewState, download: Optional[str]) -> tuple[Any, ...]:
    """Like ``_to_outputs`` but leaves the upload, prompt and seed inputs untouched."""
    return (
        view.session,
        view.history,
        _display_image(view.morphed_image),
        view.status,
        gr.update(value=view.submit_label, interactive=view.submit_enabled),
        _gallery_items(view),
        _download_update(download),
    )


def build_app(config: AppConfig) -> Any:
    """Compose and return the Gradio application."""
    morph_service = GeminiMorphService(config=config)
    callbacks_map = build_callbacks(config, morph_service=morph_service)

    def _export(view: ViewState) -> Optional[str]:
        return callbacks_map["on_export_download"](view.session, view.history)

    with gr.Blocks(title="MorphyFace AI") as demo:
        gr.Markdown(f"## MorphyFace AI\nPowered by `{config.model_id}`")

        session_state = gr.State(MorphSession(prompt=config.default_prompt))
        history_state = gr.State(MorphHistory(limit=config.history_limit))
        outcome_state = gr.State(None)

        with gr.Row():
            # Controls
            with gr.Column():
                upload_image = gr.Image(
                    label="Upload Face",
                    type="filepath",
                    sources=["upload"],
                    height=256,
                )
                prompt = gr.Textbox(
                    label="Morph Instruction",
                    lines=3,
                    value=config.default_prompt,
                    placeholder="Describe how to change the face...",
                )
                with gr.Row():
                    seed = gr.Number(label="Generation Seed", precision=0, value=0)
                    randomize_btn = gr.Button("Randomize", size="sm")
                generate_btn = gr.Button("Generate Morph", variant="primary", interactive=False)

                gr.Markdown("### Recent Morphs")
                gallery = gr.Gallery(
                    label="Recent Morphs",
                    show_label=False,
                    columns=5,
                    height="auto",
                    allow_preview=False,
                )

            # Result
            with gr.Column():
                result_image = gr.Image(label="Live Result", type="pil", interactive=False)
                download_btn = gr.DownloadButton("Download", visible=False)
                status = gr.Markdown()
                gr.Markdown(TIP_TEXT.format(model=config.model_id))

        outputs = [
            session_state,
            history_state,
            upload_image,
            result_image,
            prompt,
            seed,
            status,
            generate_btn,
            gallery,
            download_btn,
        ]
        result_outputs = [
            session_state,
            history_state,
            result_image,
            status,
            generate_btn,
            gallery,
            download_btn,
        ]

        def _load():
            return _to_outputs(callbacks_map["on_load"](), None)

        def _upload(session, history, file_path):
            view = callbacks_map["on_upload"](session, history, file_path)
            return _to_outputs(view, _export(view))

        def _clear(session, history):
            return _to_outputs(callbacks_map["on_clear_image"](session, history), None)

        def _randomize(session, history):
            view = callbacks_map["on_randomize_seed"](session, history)
            return _to_outputs(view, _export(view))

        def _begin(session, history, prompt_text, seed_value):
            view = callbacks_map["on_begin_submit"](session, history, prompt_text, seed_value)
            return (*_to_result_outputs(view, _export(view)), None)

        def _apply(session, history, outcome):
            view = callbacks_map["on_apply_outcome"](session, history, outcome)
            return _to_result_outputs(view, _export(view))

        def _select(session, history, evt: gr.SelectData):
            view = callbacks_map["on_select_history"](session, history, evt.index)
            return _to_outputs(view, _export(view))

        demo.load(fn=_load, outputs=outputs)

        upload_image.upload(
            fn=_upload,
            inputs=[session_state, history_state, upload_image],
            outputs=outputs,
        )
        upload_image.clear(
            fn=_clear,
            inputs=[session_state, history_state],
            outputs=outputs,
        )
        prompt.input(
            fn=callbacks_map["on_prompt_change"],
            inputs=[session_state, prompt],
            outputs=[session_state],
        )
        seed.input(
            fn=callbacks_map["on_seed_change"],
            inputs=[session_state, seed],
            outputs=[session_state],
        )
        randomize_btn.click(
            fn=_randomize,
            inputs=[session_state, history_state],
            outputs=outputs,
        )
        # The provider call only reads its snapshot; the result is merged into
        # whatever session state exists when it returns.
        generate_btn.click(
            fn=_begin,
            inputs=[session_state, history_state, prompt, seed],
            outputs=[*result_outputs, outcome_state],
        ).then(
            fn=callbacks_map["on_run_morph"],
            inputs=[session_state],
            outputs=[outcome_state],
        ).then(
            fn=_apply,
            inputs=[session_state, history_state, outcome_state],
            outputs=result_outputs,
        )
        gallery.select(
            fn=_select,
            inputs=[session_state, history_state],
            outputs=outputs,
        )

    return demo
