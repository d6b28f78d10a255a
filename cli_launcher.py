# cli_launcher.py - command line entry point (list / extract / single / patch / update / convert)
#
# Licensed under the MIT License.

import sys
import logging
import argparse

from gameres.gameres import BundleError
from daybreak.options import ExtractOptions, ImageOutput, PatchOptions
from execution import cnvbmp_change, repack, unpack
from execution.runlog import setup_logger

DEFAULT_LOG = "cli_runlog.txt"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="daybreak-bundle",
        description="Daybreak bundle (.dat) UnPacker / RePacker")
    parser.add_argument("--log-file", default=DEFAULT_LOG, help=f"로그 파일 경로 (기본: {DEFAULT_LOG}, 빈 값이면 사용 안 함)")
    parser.add_argument("-v", "--verbose", action="store_true", help="콘솔에 INFO 로그 출력")
    parser.add_argument("--no-progress", action="store_true", help="진행 막대 숨김")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="항목 목록 출력")
    p.add_argument("dat")
    p.add_argument("--sort-name", action="store_true", help="이름순 정렬 (원본 순서는 유지)")
    p.add_argument("--types", action="store_true", help="항목 종류 표시")

    p = sub.add_parser("extract", help="전체(또는 정규식 일치) 추출")
    p.add_argument("dat")
    p.add_argument("output_dir")
    p.add_argument("--pattern", help="이름 정규식 (re.search)")
    _add_extract_flags(p)

    p = sub.add_parser("single", help="인덱스 하나를 지정 경로로 추출")
    p.add_argument("dat")
    p.add_argument("index", type=int)
    p.add_argument("output")
    _add_extract_flags(p)

    p = sub.add_parser("patch", help="인덱스 하나 교체 (파일 전체 재작성)")
    p.add_argument("dat")
    p.add_argument("index", type=int)
    p.add_argument("input")
    p.add_argument("--sample-rate", type=int, help="wav 입력의 필수 샘플레이트")
    p.add_argument("--no-backup", action="store_true")

    p = sub.add_parser("update", help="폴더의 파일들을 원래 자리에 덮어쓰기")
    p.add_argument("dat")
    p.add_argument("directory")
    p.add_argument("--max-age-days", type=float, help="이보다 오래된 파일은 건너뜀 (기본: 번들 파일의 경과일)")
    p.add_argument("--sample-rate", type=int, help="wav 입력의 필수 샘플레이트")
    p.add_argument("--no-backup", action="store_true")

    p = sub.add_parser("convert", help="낱개 .cnv ↔ .bmp/.png/.wav 변환")
    p.add_argument("file")
    p.add_argument("--image-format", choices=["bmp", "png"], default="bmp")
    p.add_argument("--sample-rate", type=int)
    return parser


def _add_extract_flags(p: argparse.ArgumentParser):
    p.add_argument("--image-format", choices=[o.value for o in ImageOutput], default=ImageOutput.BITMAP.value,
                   help="이미지 컨테이너 출력 형식 (cnv = 변환 안 함)")
    p.add_argument("--raw-audio", action="store_true", help="오디오 컨테이너를 변환하지 않음")


def _extract_options(args) -> ExtractOptions:
    return ExtractOptions(image_output=ImageOutput(args.image_format), convert_audio=not args.raw_audio)


def run(args) -> int:
    progress = not args.no_progress

    if args.command == "list":
        unpack.run_list(args.dat, sort_by_name=args.sort_name, with_type=args.types)

    elif args.command == "extract":
        results = unpack.run_unpack(args.dat, args.output_dir, args.pattern, _extract_options(args), progress)
        failed = [r for r in results if not r.ok]
        print(f"[완료] {len(results)}개 추출 (변환 실패 {len(failed)}개)")

    elif args.command == "single":
        result = unpack.run_single(args.dat, args.index, args.output, _extract_options(args))
        print(f"[완료] #{result.index} {result.name} → {result.output_path}")

    elif args.command == "patch":
        repack.run_patch(args.dat, args.index, args.input,
                         PatchOptions(expected_sample_rate=args.sample_rate), backup=not args.no_backup)

    elif args.command == "update":
        options = PatchOptions(expected_sample_rate=args.sample_rate, max_age_days=args.max_age_days)
        repack.run_update(args.dat, args.directory, options, backup=not args.no_backup, progress=progress)

    elif args.command == "convert":
        output = cnvbmp_change.convert_file(args.file, ImageOutput(args.image_format), args.sample_rate)
        if output is None:
            print("⚠️ 변환 중 오류가 발생했습니다. 로그를 확인하세요.", file=sys.stderr)
            return 1
        print(f"[완료] 저장됨: {output}")

    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logger(args.log_file or None, logging.INFO if args.verbose else logging.WARNING)
    logging.info(f"==== 실행 시작: {args.command} ====")
    try:
        code = run(args)
    except BundleError as e:
        logging.error(f"[오류] {e}")
        print(f"[오류] {e}", file=sys.stderr)
        return 1
    except OSError as e:
        logging.exception("예외 발생:")
        print(f"[오류] {e}", file=sys.stderr)
        return 1
    logging.info("==== 실행 종료 ====")
    return code


if __name__ == "__main__":
    sys.exit(main())
